from .kubernetes.client_factory import KubernetesClientFactory

__all__ = ["KubernetesClientFactory"]
