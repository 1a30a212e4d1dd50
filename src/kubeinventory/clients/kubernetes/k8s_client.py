# src/kubeinventory/clients/kubernetes/k8s_client.py
"""Kubernetes client for discovery and schema-agnostic object listing."""

import asyncio
import contextlib
import functools
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Any, Iterator, List, Optional
import yaml
import structlog
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from kubeinventory.core.base_client import BaseClient, CatalogSource, ObjectListSource
from kubeinventory.core.exceptions import ClientConnectionException, DiscoveryError, KindListError
from kubeinventory.models import PodInfo

logger = structlog.get_logger(__name__)

_TRANSPORT_ERRORS = (ApiException, HTTPError, OSError)

DEFAULT_REQUEST_TIMEOUT_SECONDS = 60.0


class KubernetesClient(BaseClient, CatalogSource, ObjectListSource):
    """Kubernetes client backed by an explicit ``ApiClient``.

    The kubernetes library is blocking, so every request runs on the client's
    own thread pool and is awaited from the event loop.
    """

    def __init__(self,
                 config_dict: Dict[str, Any],
                 kubeconfig_path: Optional[str] = None,
                 context: Optional[str] = None,
                 kubeconfig_data: Optional[bytes] = None,
                 in_cluster: str = "auto"):
        super().__init__(config_dict, "KubernetesClient")
        self.kubeconfig_path = kubeconfig_path
        self.context = context
        self.kubeconfig_data = kubeconfig_data
        self.in_cluster = in_cluster
        self.io_workers = config_dict.get("io_workers", 64)
        self.request_timeout = config_dict.get("request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS)

        self.api_client: Optional[client.ApiClient] = None
        self.core_api = None
        self.core_v1 = None
        self.apis_api = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pool_size = 0
        self._reserved_workers = 0

    async def connect(self) -> None:
        """Load cluster configuration and build the API clients."""
        try:
            self.api_client = self._build_api_client()
        except Exception as e:
            raise ClientConnectionException("Kubernetes", f"Connection failed: {e}")

        self.core_api = client.CoreApi(self.api_client)
        self.core_v1 = client.CoreV1Api(self.api_client)
        self.apis_api = client.ApisApi(self.api_client)
        self._resize_executor()

        self._connected = True
        self.logger.info("Kubernetes client connected", host=self.api_client.configuration.host)

    async def disconnect(self) -> None:
        """Release the thread pool and the HTTP connection pool."""
        if self._executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
            self._pool_size = 0
        if self.api_client:
            self.api_client.close()
            self.api_client = None
        self._connected = False
        self.logger.info("Kubernetes client disconnected")

    async def health_check(self) -> bool:
        """Check that the API server answers a version request."""
        try:
            if not self._connected:
                return False
            await self._run(self.core_api.get_api_versions, _request_timeout=self.request_timeout)
            return True
        except Exception as e:
            self.logger.warning("Kubernetes health check failed", error=str(e))
            return False

    def _build_api_client(self) -> client.ApiClient:
        if self.kubeconfig_data:
            kubeconfig_dict = yaml.safe_load(self.kubeconfig_data.decode('utf-8'))
            self.logger.info("Loading kubeconfig from provided data")
            return config.new_client_from_config_dict(kubeconfig_dict, context=self.context)

        if self.in_cluster == "always":
            return self._build_in_cluster_client()

        try:
            api_client = config.new_client_from_config(
                config_file=self.kubeconfig_path,
                context=self.context,
            )
            self.logger.info("Loaded kubeconfig", path=self.kubeconfig_path or "default", context=self.context)
            return api_client
        except config.ConfigException:
            if self.in_cluster != "auto":
                raise
            self.logger.info("No usable kubeconfig, falling back to in-cluster config")
            return self._build_in_cluster_client()

    def _build_in_cluster_client(self) -> client.ApiClient:
        configuration = client.Configuration()
        config.load_incluster_config(client_configuration=configuration)
        self.logger.info("Loaded in-cluster config")
        return client.ApiClient(configuration=configuration)

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise ClientConnectionException("Kubernetes", "Client not connected")

    @contextlib.contextmanager
    def reserve_workers(self, count: int) -> Iterator[None]:
        """Grow the thread pool so ``count`` list calls can run at once.

        ``io_workers`` stays available for discovery, pods and health checks on
        top of every active reservation, so a reserved call never waits in the
        pool's queue. The pool shrinks back once no pass holds a reservation.
        """
        self._reserved_workers += count
        if self._executor is not None:
            self._resize_executor()
        try:
            yield
        finally:
            self._reserved_workers -= count
            if self._executor is not None and self._reserved_workers == 0:
                self._resize_executor()

    def _resize_executor(self) -> None:
        size = self.io_workers + self._reserved_workers
        if self._executor is not None:
            if size == self._pool_size or (self._reserved_workers and size < self._pool_size):
                return
        previous = self._executor
        # Work already submitted to the previous pool still runs to completion.
        self._executor = ThreadPoolExecutor(max_workers=size, thread_name_prefix="k8s-io")
        self._pool_size = size
        if previous is not None:
            previous.shutdown(wait=False)
        self.logger.debug("Resized Kubernetes I/O pool", workers=size)

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args, **kwargs))

    async def _get(self, path: str, response_type: str):
        return await self._run(
            self.api_client.call_api,
            path,
            "GET",
            header_params={"Accept": "application/json"},
            response_type=response_type,
            auth_settings=["BearerToken"],
            _return_http_data_only=True,
            _preload_content=True,
            _request_timeout=self.request_timeout,
        )

    async def fetch_catalog(self) -> List[Dict[str, Any]]:
        """Return the preferred version of every API group, plus the legacy core group."""
        self._ensure_connected()
        catalog = []
        try:
            core_versions = await self._run(self.core_api.get_api_versions, _request_timeout=self.request_timeout)
            if core_versions.versions:
                catalog.append(await self._get_resource_list("/api", core_versions.versions[0]))

            group_list = await self._run(self.apis_api.get_api_versions, _request_timeout=self.request_timeout)
            for group in group_list.groups or []:
                preferred = group.preferred_version or (group.versions[0] if group.versions else None)
                if preferred is None:
                    self.logger.warning("API group advertises no versions", group=group.name)
                    continue
                catalog.append(await self._get_resource_list("/apis", preferred.group_version))

        except _TRANSPORT_ERRORS as e:
            raise DiscoveryError(str(e))

        self.logger.debug("Fetched discovery catalog", group_versions=len(catalog))
        return catalog

    async def _get_resource_list(self, prefix: str, group_version: str) -> Dict[str, Any]:
        resource_list = await self._get(f"{prefix}/{group_version}", "V1APIResourceList")
        return {
            'group_version': resource_list.group_version or group_version,
            'resources': [
                {
                    'name': resource.name,
                    'version': resource.version or "",
                    'namespaced': bool(resource.namespaced),
                    'kind': resource.kind or "",
                    'verbs': list(resource.verbs or []),
                }
                for resource in (resource_list.resources or [])
            ],
        }

    async def list_objects(self, group: str, version: str, resource: str) -> List[Dict[str, Any]]:
        """List every object of a (group, version, resource) triple across all namespaces."""
        self._ensure_connected()
        if group:
            path = f"/apis/{group}/{version}/{resource}"
        else:
            path = f"/api/{version}/{resource}"

        try:
            data = await self._get(path, "object")
        except _TRANSPORT_ERRORS as e:
            raise KindListError(resource, str(e), {"path": path})

        if not isinstance(data, dict):
            raise KindListError(resource, "unexpected list response", {"path": path})
        return data.get("items") or []

    async def list_pods(self) -> List[PodInfo]:
        """Typed pod listing across all namespaces."""
        self._ensure_connected()
        try:
            pod_list = await self._run(
                self.core_v1.list_pod_for_all_namespaces,
                _request_timeout=self.request_timeout,
            )
        except _TRANSPORT_ERRORS as e:
            raise KindListError("pods", str(e))

        pods = [
            PodInfo(name=pod.metadata.name, namespace=pod.metadata.namespace)
            for pod in pod_list.items
        ]
        self.logger.info(f"Listed {len(pods)} pods")
        return pods
