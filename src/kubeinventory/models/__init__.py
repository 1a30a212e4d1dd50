from .inventory_models import *

__all__ = [
    "APIResourceEntry",
    "APIGroupVersionResources",
    "ResourceKind",
    "ObjectRef",
    "ResourceSummary",
    "KindFailure",
    "AggregationResult",
    "PodInfo",
]
