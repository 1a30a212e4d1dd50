"""Shared fixtures and fakes for the inventory tests."""

import asyncio
import copy
from typing import Any, Dict, Iterable, List, Optional

import pytest

from kubeinventory.config.settings import DiscoverySettings, Settings
from kubeinventory.core.base_client import CatalogSource, ObjectListSource
from kubeinventory.core.exceptions import KindListError
from kubeinventory.models import PodInfo


def make_item(name: str, labels: Optional[Dict[str, str]] = None, namespace: Optional[str] = None) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {"name": name}
    if labels is not None:
        metadata["labels"] = labels
    if namespace is not None:
        metadata["namespace"] = namespace
    return {"apiVersion": "v1", "kind": "Object", "metadata": metadata}


def group_version(gv: str, *resources: Any) -> Dict[str, Any]:
    """Catalog entry; resources are names or full entry dicts."""
    entries = []
    for resource in resources:
        if isinstance(resource, str):
            entries.append({"name": resource, "version": "", "namespaced": True})
        else:
            entries.append(resource)
    return {"group_version": gv, "resources": entries}


class FakeCluster(CatalogSource, ObjectListSource):
    """In-memory stand-in for the Kubernetes client."""

    def __init__(self,
                 catalog: Optional[List[Dict[str, Any]]] = None,
                 objects: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 delays: Optional[Dict[str, float]] = None,
                 failures: Iterable[str] = (),
                 catalog_error: Optional[Exception] = None,
                 healthy: bool = True):
        self.catalog = catalog or []
        self.objects = objects or {}
        self.delays = delays or {}
        self.failures = set(failures)
        self.catalog_error = catalog_error
        self.healthy = healthy
        self.pods: List[PodInfo] = []
        self.pods_error: Optional[Exception] = None

        self.catalog_calls = 0
        self.list_calls: List[tuple] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self._connected = True
        self.disconnected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False
        self.disconnected = True

    async def health_check(self) -> bool:
        return self.healthy

    async def fetch_catalog(self) -> List[Dict[str, Any]]:
        self.catalog_calls += 1
        if self.catalog_error is not None:
            raise self.catalog_error
        return copy.deepcopy(self.catalog)

    async def list_objects(self, group: str, version: str, resource: str) -> List[Dict[str, Any]]:
        self.list_calls.append((group, version, resource))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            delay = self.delays.get(resource, 0)
            if delay:
                await asyncio.sleep(delay)
            else:
                await asyncio.sleep(0)
            if resource in self.failures:
                raise KindListError(resource, "the server does not allow this method on the requested resource")
            return copy.deepcopy(self.objects.get(resource, []))
        finally:
            self.in_flight -= 1

    async def list_pods(self) -> List[PodInfo]:
        if self.pods_error is not None:
            raise self.pods_error
        return list(self.pods)


@pytest.fixture
def pods_catalog() -> List[Dict[str, Any]]:
    """Core group with a listable kind and one of its sub-resources."""
    return [
        group_version(
            "v1",
            {"name": "pods", "version": "v1", "namespaced": True, "kind": "Pod", "verbs": ["get", "list"]},
            {"name": "pods/log", "version": "v1", "namespaced": True, "kind": "Pod", "verbs": ["get"]},
        )
    ]


@pytest.fixture
def pods_cluster(pods_catalog) -> FakeCluster:
    return FakeCluster(
        catalog=pods_catalog,
        objects={"pods": [make_item("a"), make_item("b")]},
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        discovery=DiscoverySettings(
            list_timeout_seconds=None,
            pass_timeout_seconds=None,
            catalog_timeout_seconds=None,
        )
    )
