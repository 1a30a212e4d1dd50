"""Concurrent aggregation of live objects across every discovered resource kind."""

import asyncio
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Set, Tuple
import structlog
from pydantic import ValidationError

from kubeinventory.core.base_client import ObjectListSource
from kubeinventory.core.exceptions import KindListError, MalformedIdentity, UnnamedObjectError
from kubeinventory.core.utils import gather_with_concurrency
from kubeinventory.models import (
    AggregationResult,
    APIGroupVersionResources,
    KindFailure,
    ObjectRef,
    ResourceKind,
    ResourceSummary,
)
from .base import BaseDiscoveryService
from .enumerator import DiscoveryEnumerator
from .identity import is_subresource, resolve_kind

logger = structlog.get_logger(__name__)

PASS_DEADLINE_ERROR = "pass deadline exceeded"


class ResourceAggregator(BaseDiscoveryService):
    """Lists every listable resource kind concurrently and merges the results.

    One task is launched per eligible kind. ``max_concurrency`` caps how many
    run at once (``None`` is unbounded). Results are appended to a shared
    :class:`AggregationResult` under a single lock. A kind that fails is
    logged and left out; it never affects the other kinds.

    Config keys: ``max_concurrency``, ``list_timeout_seconds``,
    ``pass_timeout_seconds``, ``include_labels``.
    """

    def __init__(self,
                 enumerator: DiscoveryEnumerator,
                 object_source: ObjectListSource,
                 config: Optional[Dict[str, Any]] = None):
        super().__init__(object_source, config or {})
        self.enumerator = enumerator
        self.max_concurrency: Optional[int] = self.config.get("max_concurrency")
        self.list_timeout: Optional[float] = self.config.get("list_timeout_seconds")
        self.pass_timeout: Optional[float] = self.config.get("pass_timeout_seconds")
        self.include_labels: bool = self.config.get("include_labels", True)

    def get_discovery_type(self) -> str:
        return "resource_inventory"

    def count_resources(self, results: AggregationResult) -> int:
        return len(results.summaries) if results else 0

    async def discover(self) -> AggregationResult:
        return await self.aggregate()

    async def aggregate(self) -> AggregationResult:
        """Run one aggregation pass.

        Raises:
            DiscoveryError: the catalog could not be obtained; nothing was listed.
        """
        catalog = await self.enumerator.enumerate()

        result = AggregationResult()
        lock = asyncio.Lock()
        kinds = self._eligible_kinds(catalog, result)

        self.logger.info(
            "Starting aggregation pass",
            kinds=len(kinds),
            max_concurrency=self.max_concurrency or "unbounded",
        )

        in_flight = min(len(kinds), self.max_concurrency or len(kinds))
        coros = [self._collect(kind, result, lock) for kind in kinds]
        gathered = gather_with_concurrency(coros, max_concurrency=self.max_concurrency)
        with self.client.reserve_workers(in_flight):
            try:
                if self.pass_timeout:
                    await asyncio.wait_for(gathered, timeout=self.pass_timeout)
                else:
                    await gathered
            except asyncio.TimeoutError:
                self._record_unfinished(kinds, result)

        result.finished_at = datetime.now(timezone.utc)
        self.logger.info(
            f"Aggregation pass completed in {result.duration_seconds:.2f}s",
            summaries=len(result.summaries),
            failed=len(result.failures),
            objects=result.total_objects(),
            timed_out=result.timed_out,
        )
        return result

    def _eligible_kinds(self,
                        catalog: List[APIGroupVersionResources],
                        result: AggregationResult) -> List[ResourceKind]:
        kinds = []
        seen: Set[Tuple[str, str, str]] = set()

        for group in catalog:
            for entry in group.resources:
                if is_subresource(entry.name):
                    continue

                try:
                    kind = resolve_kind(group.group_version, entry)
                except MalformedIdentity as e:
                    self.logger.warning("Skipping resource with unresolvable identity", resource=entry.name, error=str(e))
                    result.failures.append(KindFailure(resource=entry.name, error=str(e)))
                    continue

                if kind.identity in seen:
                    self.logger.debug("Duplicate resource kind in catalog", kind=str(kind))
                    continue
                seen.add(kind.identity)
                kinds.append(kind)

        return kinds

    async def _collect(self, kind: ResourceKind, result: AggregationResult, lock: asyncio.Lock) -> None:
        try:
            items = await self._list(kind)
            objects = self._to_object_refs(kind, items)
        except Exception as e:
            self.logger.warning(
                "Error listing resource",
                resource=kind.name,
                group=kind.group,
                version=kind.version,
                error=str(e),
            )
            async with lock:
                result.failures.append(
                    KindFailure(resource=kind.name, group=kind.group, version=kind.version, error=str(e))
                )
            return

        summary = ResourceSummary.from_objects(kind, objects, include_labels=self.include_labels)
        async with lock:
            result.summaries.append(summary)

    async def _list(self, kind: ResourceKind) -> List[Any]:
        listing = self.client.list_objects(kind.group, kind.version, kind.name)
        if not self.list_timeout:
            return await listing
        try:
            return await asyncio.wait_for(listing, timeout=self.list_timeout)
        except asyncio.TimeoutError:
            raise KindListError(kind.name, f"timed out after {self.list_timeout}s")

    def _to_object_refs(self, kind: ResourceKind, items: Any) -> List[ObjectRef]:
        if not isinstance(items, (list, tuple)):
            raise KindListError(kind.name, f"expected a list of objects, got {type(items).__name__}")

        objects = []
        for item in items:
            if not isinstance(item, Mapping):
                raise KindListError(kind.name, f"unexpected object type {type(item).__name__}")
            try:
                objects.append(ObjectRef.from_item(item))
            except UnnamedObjectError:
                self.logger.debug("Ignoring object without a name", resource=kind.name)
            except ValidationError as e:
                raise KindListError(kind.name, f"malformed object metadata: {e.errors()[0]['msg']}")
        return objects

    def _record_unfinished(self, kinds: List[ResourceKind], result: AggregationResult) -> None:
        # The cancelled tasks can no longer touch ``result``.
        finished = {summary.identity for summary in result.summaries}
        finished.update((f.group, f.version, f.resource) for f in result.failures)

        unfinished = [kind for kind in kinds if kind.identity not in finished]
        for kind in unfinished:
            result.failures.append(
                KindFailure(resource=kind.name, group=kind.group, version=kind.version, error=PASS_DEADLINE_ERROR)
            )
        result.timed_out = True
        self.logger.warning(
            "Aggregation pass deadline exceeded",
            timeout_seconds=self.pass_timeout,
            unfinished=len(unfinished),
        )
