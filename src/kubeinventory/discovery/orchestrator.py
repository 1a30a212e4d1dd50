# src/kubeinventory/discovery/orchestrator.py
"""Orchestrator wiring the Kubernetes client, enumerator and aggregator."""

from typing import Dict, Any, List, Optional
import structlog

from kubeinventory.clients.kubernetes.client_factory import KubernetesClientFactory
from kubeinventory.clients.kubernetes.k8s_client import KubernetesClient
from kubeinventory.config.settings import Settings
from kubeinventory.core.exceptions import ClientConnectionException
from kubeinventory.models import AggregationResult, PodInfo
from .aggregator import ResourceAggregator
from .enumerator import DiscoveryEnumerator

logger = structlog.get_logger(__name__)


class InventoryOrchestrator:
    """
    Owns the cluster connection for the lifetime of a process.

    Every call to :meth:`run_pass` re-fetches the discovery catalog; nothing
    is cached between passes.
    """

    def __init__(self, settings: Settings, k8s_client: Optional[KubernetesClient] = None):
        self.settings = settings
        self.k8s_config = settings.kubernetes.model_dump(mode="json")
        self.discovery_config = settings.discovery.model_dump(mode="json")

        self.k8s_client = k8s_client
        self.enumerator: Optional[DiscoveryEnumerator] = None
        self.aggregator: Optional[ResourceAggregator] = None

        self.logger = logger.bind(orchestrator="inventory")

    async def initialize(self) -> None:
        """Connect to the cluster and build the discovery pipeline."""
        self.logger.info("Initializing inventory orchestrator")

        if self.k8s_client is None:
            self.k8s_client = KubernetesClientFactory(self.k8s_config).create_client()
        if not self.k8s_client.is_connected:
            await self.k8s_client.connect()

        self.enumerator = DiscoveryEnumerator(
            self.k8s_client,
            timeout_seconds=self.discovery_config.get("catalog_timeout_seconds"),
            retry_attempts=self.discovery_config.get("retry_attempts", 1),
            backoff_factor=self.discovery_config.get("retry_backoff_factor", 1.5),
        )
        self.aggregator = ResourceAggregator(self.enumerator, self.k8s_client, self.discovery_config)

        self.logger.info("Inventory orchestrator initialized", **{
            k: v for k, v in self.discovery_config.items() if k.endswith("_seconds") or k == "max_concurrency"
        })

    @property
    def is_connected(self) -> bool:
        return bool(self.k8s_client and self.k8s_client.is_connected)

    def _require_initialized(self) -> None:
        if not self.aggregator:
            raise ClientConnectionException("Kubernetes", "Orchestrator not initialized")

    async def run_pass(self) -> AggregationResult:
        """Run one aggregation pass. Raises ``DiscoveryError`` if the catalog is unavailable."""
        self._require_initialized()
        return await self.aggregator.aggregate()

    async def run_pass_with_metadata(self) -> Dict[str, Any]:
        """Run one pass and report status instead of raising."""
        self._require_initialized()
        return await self.aggregator.discover_with_metadata()

    async def list_pods(self) -> List[PodInfo]:
        self._require_initialized()
        return await self.k8s_client.list_pods()

    async def health_check(self) -> bool:
        return self.is_connected and await self.k8s_client.health_check()

    async def cleanup(self) -> None:
        """Cleanup all clients and resources."""
        self.logger.info("Cleaning up inventory orchestrator")

        try:
            if self.k8s_client:
                await self.k8s_client.disconnect()
        except Exception as e:
            self.logger.warning("Error during cleanup", error=str(e))

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.cleanup()
