"""Base client interfaces for the control-plane collaborators."""

import contextlib
from abc import ABC, abstractmethod
from typing import Dict, Any, Iterator, List, Optional
import structlog

logger = structlog.get_logger(__name__)


class BaseClient(ABC):
    """Abstract base class for all external service clients."""

    def __init__(self, config: Dict[str, Any], name: Optional[str] = None):
        self.config = config
        self.name = name or self.__class__.__name__
        self._connected = False
        self.logger = logger.bind(client=self.name)

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to the external service."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the external service."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the client connection is healthy."""
        pass

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._connected

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()


class CatalogSource(ABC):
    """Anything that can answer a discovery request.

    ``fetch_catalog`` returns one mapping per served group/version::

        {"group_version": "apps/v1",
         "resources": [{"name": "deployments", "version": "v1", "namespaced": True}, ...]}
    """

    @abstractmethod
    async def fetch_catalog(self) -> List[Dict[str, Any]]:
        """Return the raw discovery catalog."""
        pass


class ObjectListSource(ABC):
    """Lists objects of an arbitrary (group, version, resource) triple.

    Returned items are unstructured mappings exposing at least
    ``metadata.name`` and, optionally, ``metadata.labels``.
    """

    @abstractmethod
    async def list_objects(self, group: str, version: str, resource: str) -> List[Dict[str, Any]]:
        """Return all live objects of one resource kind."""
        pass

    @contextlib.contextmanager
    def reserve_workers(self, count: int) -> Iterator[None]:
        """Hold capacity for ``count`` concurrent list calls while the block runs.

        Sources that do not run calls on a bounded worker pool need nothing here.
        """
        yield
