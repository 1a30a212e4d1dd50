from .exceptions import *
from .base_client import BaseClient, CatalogSource, ObjectListSource
from .utils import *

__all__ = [
    "BaseClient",
    "CatalogSource",
    "ObjectListSource",
    "KubeInventoryException",
    "DiscoveryError",
    "KindListError",
    "MalformedIdentity",
    "UnnamedObjectError",
    "ClientConnectionException",
    "ConfigurationException",
    "retry_with_backoff",
    "setup_logging",
    "gather_with_concurrency",
]
