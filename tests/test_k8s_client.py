"""Tests for the Kubernetes client wrapper."""

import asyncio
import threading
import time
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException

from kubeinventory.clients.kubernetes.client_factory import KubernetesClientFactory
from kubeinventory.clients.kubernetes.k8s_client import KubernetesClient
from kubeinventory.core.exceptions import (
    ClientConnectionException,
    ConfigurationException,
    DiscoveryError,
    KindListError,
)
from kubeinventory.discovery.aggregator import ResourceAggregator
from kubeinventory.discovery.enumerator import DiscoveryEnumerator

MODULE = "kubeinventory.clients.kubernetes.k8s_client"


def _resource(name, namespaced=True, kind="", version=None, verbs=("list",)):
    return SimpleNamespace(name=name, namespaced=namespaced, kind=kind, version=version, verbs=list(verbs))


def _resource_lists():
    return {
        "/api/v1": SimpleNamespace(group_version="v1", resources=[
            _resource("pods", kind="Pod"),
            _resource("pods/log", kind="Pod", verbs=("get",)),
            _resource("namespaces", namespaced=False, kind="Namespace"),
        ]),
        "/apis/apps/v1": SimpleNamespace(group_version="apps/v1", resources=[
            _resource("deployments", kind="Deployment"),
        ]),
    }


def _api_client(responses):
    api_client = MagicMock()
    api_client.configuration.host = "https://127.0.0.1:6443"

    def call_api(path, method, **kwargs):
        response = responses[path]
        if isinstance(response, Exception):
            raise response
        return response

    api_client.call_api.side_effect = call_api
    return api_client


def _slow_api_client(kind_count, delay):
    """API client whose list calls block for ``delay`` seconds, tracking overlap."""
    api_client = MagicMock()
    api_client.configuration.host = "https://127.0.0.1:6443"
    lock = threading.Lock()
    calls = {"in_flight": 0, "peak": 0}
    resource_lists = {
        "/api/v1": SimpleNamespace(group_version="v1", resources=[_resource(f"kind{i}") for i in range(kind_count)]),
        "/apis/apps/v1": SimpleNamespace(group_version="apps/v1", resources=[]),
    }

    def call_api(path, method, **kwargs):
        if path in resource_lists:
            return resource_lists[path]
        with lock:
            calls["in_flight"] += 1
            calls["peak"] = max(calls["peak"], calls["in_flight"])
        try:
            time.sleep(delay)
            return {"items": [{"metadata": {"name": path.rsplit("/", 1)[-1] + "-0"}}]}
        finally:
            with lock:
                calls["in_flight"] -= 1

    api_client.call_api.side_effect = call_api
    return api_client, calls


def _connected_client(responses=None, config_dict=None, api_client=None, **kwargs) -> KubernetesClient:
    k8s = KubernetesClient(config_dict or {"io_workers": 4}, **kwargs)
    api_client = api_client or _api_client(responses or {})
    with patch(f"{MODULE}.config.new_client_from_config", return_value=api_client), \
            patch(f"{MODULE}.client.CoreApi") as core_api, \
            patch(f"{MODULE}.client.CoreV1Api") as core_v1, \
            patch(f"{MODULE}.client.ApisApi") as apis_api:
        asyncio.run(k8s.connect())

    core_api.return_value.get_api_versions.return_value = SimpleNamespace(versions=["v1"])
    apis_api.return_value.get_api_versions.return_value = SimpleNamespace(groups=[
        SimpleNamespace(
            name="apps",
            preferred_version=SimpleNamespace(group_version="apps/v1", version="v1"),
            versions=[SimpleNamespace(group_version="apps/v1", version="v1")],
        ),
    ])
    k8s.core_api = core_api.return_value
    k8s.core_v1 = core_v1.return_value
    k8s.apis_api = apis_api.return_value
    return k8s


class TestConnect:

    @pytest.mark.unit
    def test_uses_explicit_kubeconfig_and_context(self):
        k8s = KubernetesClient({}, kubeconfig_path="/tmp/kubeconfig", context="kind-dev")
        with patch(f"{MODULE}.config.new_client_from_config", return_value=_api_client({})) as loader:
            asyncio.run(k8s.connect())

        loader.assert_called_once_with(config_file="/tmp/kubeconfig", context="kind-dev")
        assert k8s.is_connected
        asyncio.run(k8s.disconnect())
        assert not k8s.is_connected

    @pytest.mark.unit
    def test_falls_back_to_in_cluster_config(self):
        k8s = KubernetesClient({})
        with patch(f"{MODULE}.config.new_client_from_config", side_effect=ConfigException("no kubeconfig")), \
                patch(f"{MODULE}.config.load_incluster_config") as incluster:
            asyncio.run(k8s.connect())

        incluster.assert_called_once()
        assert k8s.is_connected
        asyncio.run(k8s.disconnect())

    @pytest.mark.unit
    def test_no_in_cluster_fallback_when_disabled(self):
        k8s = KubernetesClient({}, in_cluster="never")
        with patch(f"{MODULE}.config.new_client_from_config", side_effect=ConfigException("no kubeconfig")), \
                patch(f"{MODULE}.config.load_incluster_config") as incluster:
            with pytest.raises(ClientConnectionException):
                asyncio.run(k8s.connect())

        incluster.assert_not_called()
        assert not k8s.is_connected

    @pytest.mark.unit
    def test_kubeconfig_data(self):
        data = b"apiVersion: v1\nkind: Config\nclusters: []\n"
        k8s = KubernetesClient({}, kubeconfig_data=data, context="ctx")
        with patch(f"{MODULE}.config.new_client_from_config_dict", return_value=_api_client({})) as loader:
            asyncio.run(k8s.connect())

        loader.assert_called_once_with({"apiVersion": "v1", "kind": "Config", "clusters": []}, context="ctx")
        asyncio.run(k8s.disconnect())

    @pytest.mark.unit
    def test_requires_connection(self):
        with pytest.raises(ClientConnectionException):
            asyncio.run(KubernetesClient({}).list_objects("", "v1", "pods"))


class TestFetchCatalog:

    @pytest.mark.unit
    def test_core_and_preferred_group_versions(self):
        k8s = _connected_client(_resource_lists())

        catalog = asyncio.run(k8s.fetch_catalog())

        assert [gv["group_version"] for gv in catalog] == ["v1", "apps/v1"]
        assert [r["name"] for r in catalog[0]["resources"]] == ["pods", "pods/log", "namespaces"]
        assert catalog[0]["resources"][2] == {
            "name": "namespaces",
            "version": "",
            "namespaced": False,
            "kind": "Namespace",
            "verbs": ["list"],
        }
        asyncio.run(k8s.disconnect())

    @pytest.mark.unit
    def test_api_error_becomes_discovery_error(self):
        responses = _resource_lists()
        responses["/apis/apps/v1"] = ApiException(status=503, reason="Service Unavailable")
        k8s = _connected_client(responses)

        with pytest.raises(DiscoveryError) as exc_info:
            asyncio.run(k8s.fetch_catalog())

        assert "Service Unavailable" in str(exc_info.value)
        asyncio.run(k8s.disconnect())


class TestListObjects:

    @pytest.mark.unit
    def test_core_group_path(self):
        items = [{"metadata": {"name": "a"}}, {"metadata": {"name": "b"}}]
        k8s = _connected_client({"/api/v1/pods": {"kind": "PodList", "items": items}})

        assert asyncio.run(k8s.list_objects("", "v1", "pods")) == items
        asyncio.run(k8s.disconnect())

    @pytest.mark.unit
    def test_named_group_path(self):
        k8s = _connected_client({"/apis/apps/v1/deployments": {"items": None}})

        assert asyncio.run(k8s.list_objects("apps", "v1", "deployments")) == []
        _, kwargs = k8s.api_client.call_api.call_args
        assert kwargs["response_type"] == "object"
        asyncio.run(k8s.disconnect())

    @pytest.mark.unit
    def test_api_error_becomes_kind_list_error(self):
        k8s = _connected_client({"/api/v1/secrets": ApiException(status=403, reason="Forbidden")})

        with pytest.raises(KindListError) as exc_info:
            asyncio.run(k8s.list_objects("", "v1", "secrets"))

        assert exc_info.value.resource == "secrets"
        asyncio.run(k8s.disconnect())


class TestListPods:

    @pytest.mark.unit
    def test_typed_pod_listing(self):
        k8s = _connected_client()
        k8s.core_v1.list_pod_for_all_namespaces.return_value = SimpleNamespace(items=[
            SimpleNamespace(metadata=SimpleNamespace(name="web-0", namespace="default")),
            SimpleNamespace(metadata=SimpleNamespace(name="coredns-1", namespace="kube-system")),
        ])

        pods = asyncio.run(k8s.list_pods())

        assert [(p.name, p.namespace) for p in pods] == [("web-0", "default"), ("coredns-1", "kube-system")]
        asyncio.run(k8s.disconnect())


class TestRequestTimeout:

    @pytest.mark.unit
    def test_default_timeout_reaches_every_call(self):
        k8s = _connected_client({"/api/v1/pods": {"items": []}})

        asyncio.run(k8s.list_objects("", "v1", "pods"))
        assert asyncio.run(k8s.health_check())

        _, kwargs = k8s.api_client.call_api.call_args
        assert kwargs["_request_timeout"] == 60.0
        k8s.core_api.get_api_versions.assert_called_with(_request_timeout=60.0)
        asyncio.run(k8s.disconnect())

    @pytest.mark.unit
    def test_configured_timeout(self):
        k8s = _connected_client(_resource_lists(), config_dict={"request_timeout_seconds": 5})

        asyncio.run(k8s.fetch_catalog())
        asyncio.run(k8s.health_check())

        for call in k8s.api_client.call_api.call_args_list:
            assert call.kwargs["_request_timeout"] == 5
        k8s.apis_api.get_api_versions.assert_called_with(_request_timeout=5)
        k8s.core_api.get_api_versions.assert_called_with(_request_timeout=5)
        asyncio.run(k8s.disconnect())


class TestWorkerPool:

    @pytest.mark.unit
    def test_more_kinds_than_io_workers_all_listed_within_timeout(self):
        api_client, calls = _slow_api_client(kind_count=8, delay=0.3)
        k8s = _connected_client(config_dict={"io_workers": 2}, api_client=api_client)
        aggregator = ResourceAggregator(DiscoveryEnumerator(k8s), k8s, {"list_timeout_seconds": 0.5})

        result = asyncio.run(aggregator.aggregate())

        assert result.failures == []
        assert sorted(s.resource_name for s in result.summaries) == [f"kind{i}" for i in range(8)]
        assert calls["peak"] == 8
        asyncio.run(k8s.disconnect())

    @pytest.mark.unit
    def test_pool_follows_concurrency_cap_and_shrinks_after_pass(self):
        api_client, calls = _slow_api_client(kind_count=6, delay=0.05)
        k8s = _connected_client(config_dict={"io_workers": 2}, api_client=api_client)
        aggregator = ResourceAggregator(DiscoveryEnumerator(k8s), k8s, {"max_concurrency": 3})

        result = asyncio.run(aggregator.aggregate())

        assert len(result.summaries) == 6
        assert calls["peak"] == 3
        assert k8s._pool_size == 2
        asyncio.run(k8s.disconnect())


class TestClientFactory:

    @pytest.mark.unit
    def test_creates_client_from_settings_dump(self):
        factory = KubernetesClientFactory({"kubeconfig_path": "/tmp/kc", "context": "prod", "in_cluster": "never"})

        k8s = factory.create_client()

        assert k8s.kubeconfig_path == "/tmp/kc"
        assert k8s.context == "prod"
        assert k8s.in_cluster == "never"

    @pytest.mark.unit
    def test_rejects_unknown_in_cluster_mode(self):
        with pytest.raises(ConfigurationException):
            KubernetesClientFactory({"in_cluster": "sometimes"})
