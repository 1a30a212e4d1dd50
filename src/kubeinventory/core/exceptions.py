"""Custom exceptions for the inventory service."""

from typing import Optional, Dict, Any


class KubeInventoryException(Exception):
    """Base exception for the inventory service."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class DiscoveryError(KubeInventoryException):
    """Raised when the discovery catalog cannot be fetched or is malformed.

    Fatal to an aggregation pass: no listing starts and no partial result
    is returned.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Error retrieving server resources: {message}", details)


class KindListError(KubeInventoryException):
    """Raised when listing the objects of a single resource kind fails."""

    def __init__(self, resource: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.resource = resource
        super().__init__(f"Error listing {resource}: {message}", details)


class MalformedIdentity(KindListError):
    """Raised when a kind's group/version cannot be resolved from the catalog."""

    def __init__(self, group_version: Any, resource: str, message: str):
        self.group_version = group_version
        super().__init__(
            resource,
            f"cannot resolve group/version from {group_version!r}: {message}",
            {"group_version": group_version},
        )


class UnnamedObjectError(KubeInventoryException):
    """Raised for a listed object that carries no ``metadata.name``."""
    pass


class ClientConnectionException(KubeInventoryException):
    """Raised when client connections fail."""

    def __init__(self, client_type: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.client_type = client_type
        super().__init__(f"{client_type} connection failed: {message}", details)


class ConfigurationException(KubeInventoryException):
    """Raised when configuration is invalid."""
    pass
