"""
Inventory Data Models
Catalog entries, resource identities and per-pass aggregation results
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any, FrozenSet, Tuple
from datetime import datetime, timezone

from kubeinventory.core.exceptions import UnnamedObjectError


SUBRESOURCE_SEPARATOR = "/"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class APIResourceEntry(BaseModel):
    """One resource entry as reported by the discovery endpoint."""

    name: str = Field(..., min_length=1, description="Plural resource name, e.g. 'deployments' or 'pods/log'")
    version: str = Field("", description="Version declared on the entry itself (often empty)")
    namespaced: bool = False
    kind: str = ""
    verbs: List[str] = Field(default_factory=list)

    @property
    def is_subresource(self) -> bool:
        return SUBRESOURCE_SEPARATOR in self.name


class APIGroupVersionResources(BaseModel):
    """All resource entries served under one wire-level GroupVersion."""

    group_version: str
    resources: List[APIResourceEntry] = Field(default_factory=list)


class ResourceKind(BaseModel):
    """Resolved identity of one listable resource type."""

    model_config = ConfigDict(frozen=True)

    group: str
    version: str
    name: str
    namespaced: bool = False

    @property
    def identity(self) -> Tuple[str, str, str]:
        return (self.group, self.version, self.name)

    def __str__(self) -> str:
        if self.group:
            return f"{self.name}.{self.version}.{self.group}"
        return f"{self.name}.{self.version}"


class ObjectRef(BaseModel):
    """Identity of one live object within a kind."""

    name: str
    namespace: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "ObjectRef":
        """Build from an unstructured object (``metadata.name`` / ``metadata.labels``)."""
        metadata = item.get("metadata") or {}
        name = metadata.get("name")
        if not isinstance(name, str) or not name:
            raise UnnamedObjectError("object has no metadata.name")
        return cls(
            name=name,
            namespace=metadata.get("namespace"),
            labels=metadata.get("labels") or {},
        )


class ResourceSummary(BaseModel):
    """Objects found for one resource kind during one pass."""

    model_config = ConfigDict(populate_by_name=True)

    resource_name: str = Field(..., alias="resourceName")
    group: str
    version: str
    names: List[str] = Field(default_factory=list)
    labels: Optional[Dict[str, Dict[str, str]]] = None

    @classmethod
    def from_objects(
        cls,
        kind: ResourceKind,
        objects: List[ObjectRef],
        include_labels: bool = True,
    ) -> "ResourceSummary":
        labels = {obj.name: dict(obj.labels) for obj in objects} if include_labels else None
        return cls(
            resource_name=kind.name,
            group=kind.group,
            version=kind.version,
            names=[obj.name for obj in objects],
            labels=labels,
        )

    @property
    def identity(self) -> Tuple[str, str, str]:
        return (self.group, self.version, self.resource_name)

    def fingerprint(self) -> Tuple:
        """Order-independent, hashable view used for set comparison."""
        labels = None
        if self.labels is not None:
            labels = frozenset(
                (name, frozenset(values.items())) for name, values in self.labels.items()
            )
        return (self.identity, tuple(sorted(self.names)), labels)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class KindFailure(BaseModel):
    """A kind that contributed nothing to a pass."""

    resource: str
    group: str = ""
    version: str = ""
    error: str


class AggregationResult(BaseModel):
    """All summaries produced by one aggregation pass.

    Ordering of ``summaries`` is not meaningful; compare results with
    :meth:`as_set`.
    """

    summaries: List[ResourceSummary] = Field(default_factory=list)
    failures: List[KindFailure] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None
    timed_out: bool = False

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def as_set(self) -> FrozenSet[Tuple]:
        return frozenset(summary.fingerprint() for summary in self.summaries)

    def to_payload(self) -> List[Dict[str, Any]]:
        return [summary.to_payload() for summary in self.summaries]

    def total_objects(self) -> int:
        return sum(len(summary.names) for summary in self.summaries)


class PodInfo(BaseModel):
    """Typed pod listing entry."""

    name: str
    namespace: str
