"""Base discovery service interface."""

from abc import ABC, abstractmethod
from typing import Dict, Any
import structlog
from datetime import datetime, timezone

logger = structlog.get_logger(__name__)


class BaseDiscoveryService(ABC):
    """A long-lived service that performs one discovery per call.

    Nothing about an individual call is kept on the instance, so several
    calls may run concurrently on the same service.
    """

    def __init__(self, client, config: Dict[str, Any]):
        self.client = client
        self.config = config
        self.logger = logger.bind(service=self.__class__.__name__)

    @abstractmethod
    async def discover(self) -> Any:
        """Perform discovery operation."""
        pass

    @abstractmethod
    def get_discovery_type(self) -> str:
        """Get the type of discovery this service performs."""
        pass

    def count_resources(self, results: Any) -> int:
        """Number of resources in a discovery result."""
        return len(results) if results else 0

    async def discover_with_metadata(self) -> Dict[str, Any]:
        """Perform discovery and wrap the outcome with timing and status.

        Never raises: failures are reported through ``status`` and ``error``.
        """
        started = datetime.now(timezone.utc)
        results = None
        error = None

        try:
            results = await self.discover()
        except Exception as e:
            error = str(e)
            self.logger.error(f"Discovery failed for {self.get_discovery_type()}", error=error)

        finished = datetime.now(timezone.utc)
        return {
            'type': self.get_discovery_type(),
            'status': 'failed' if error is not None else 'success',
            'data': results,
            'error': error,
            'metadata': {
                'start_time': started,
                'end_time': finished,
                'duration_seconds': (finished - started).total_seconds(),
                'resources_discovered': self.count_resources(results) if error is None else 0,
                'errors': [error] if error is not None else [],
            },
        }
