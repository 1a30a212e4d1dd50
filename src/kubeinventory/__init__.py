"""Kubernetes resource inventory: discovery, concurrent listing and reporting."""

__version__ = "0.1.0"
