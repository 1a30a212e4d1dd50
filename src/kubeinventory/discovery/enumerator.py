"""Discovery enumerator: fetches the catalog of served resource kinds."""

import asyncio
from typing import Any, List, Optional
import structlog
from pydantic import ValidationError

from kubeinventory.core.base_client import CatalogSource
from kubeinventory.core.exceptions import DiscoveryError
from kubeinventory.core.utils import retry_with_backoff
from kubeinventory.models import APIGroupVersionResources

logger = structlog.get_logger(__name__)


class DiscoveryEnumerator:
    """Asks the control plane for every resource kind it currently serves.

    The catalog is fetched fresh on every call and returned as reported:
    entries are neither filtered nor de-duplicated here.
    """

    def __init__(self,
                 catalog_source: CatalogSource,
                 timeout_seconds: Optional[float] = None,
                 retry_attempts: int = 1,
                 backoff_factor: float = 1.5):
        self.catalog_source = catalog_source
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = retry_attempts
        self.backoff_factor = backoff_factor
        self.logger = logger.bind(component="enumerator")

    async def enumerate(self) -> List[APIGroupVersionResources]:
        """Return the catalog grouped by GroupVersion.

        Raises:
            DiscoveryError: the catalog is unreachable, timed out or malformed.
        """
        fetch = retry_with_backoff(
            max_retries=self.retry_attempts,
            backoff_factor=self.backoff_factor,
        )(self._fetch_once)

        try:
            raw_catalog = await fetch()
        except DiscoveryError:
            raise
        except Exception as e:
            raise DiscoveryError(str(e)) from e

        catalog = self._parse(raw_catalog)
        self.logger.info(
            "Enumerated discovery catalog",
            group_versions=len(catalog),
            resources=sum(len(gv.resources) for gv in catalog),
        )
        return catalog

    async def _fetch_once(self) -> Any:
        if not self.timeout_seconds:
            return await self.catalog_source.fetch_catalog()
        try:
            return await asyncio.wait_for(self.catalog_source.fetch_catalog(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            self.logger.warning("Discovery catalog fetch timed out", timeout_seconds=self.timeout_seconds)
            raise DiscoveryError(f"timed out after {self.timeout_seconds}s")

    def _parse(self, raw_catalog: Any) -> List[APIGroupVersionResources]:
        if not isinstance(raw_catalog, (list, tuple)):
            raise DiscoveryError(f"malformed catalog: expected a list, got {type(raw_catalog).__name__}")
        try:
            return [APIGroupVersionResources.model_validate(item) for item in raw_catalog]
        except ValidationError as e:
            raise DiscoveryError(f"malformed catalog: {e}") from e
