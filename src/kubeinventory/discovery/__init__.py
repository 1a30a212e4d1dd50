from .aggregator import ResourceAggregator
from .enumerator import DiscoveryEnumerator
from .identity import is_subresource, resolve_kind
from .orchestrator import InventoryOrchestrator

__all__ = [
    "ResourceAggregator",
    "DiscoveryEnumerator",
    "InventoryOrchestrator",
    "is_subresource",
    "resolve_kind",
]
