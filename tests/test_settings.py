"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from kubeinventory.config.settings import InClusterMode, LogLevel, Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("K8S_KUBECONFIG_PATH", "K8S_CONTEXT", "DISCOVERY_MAX_CONCURRENCY", "API_PORT", "LOG_LEVEL",
                 "K8S_REQUEST_TIMEOUT_SECONDS"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:

    @pytest.mark.unit
    def test_defaults(self):
        settings = Settings()

        assert settings.api.port == 8080
        assert settings.discovery.max_concurrency is None
        assert settings.discovery.retry_attempts == 1
        assert settings.discovery.include_labels is True
        assert settings.kubernetes.in_cluster == InClusterMode.AUTO
        assert settings.kubernetes.request_timeout_seconds == 60.0

    @pytest.mark.unit
    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("K8S_KUBECONFIG_PATH", "/etc/kube/config")
        monkeypatch.setenv("K8S_CONTEXT", "kind-dev")
        monkeypatch.setenv("DISCOVERY_MAX_CONCURRENCY", "16")
        monkeypatch.setenv("DISCOVERY_PASS_TIMEOUT_SECONDS", "45")
        monkeypatch.setenv("API_PORT", "9090")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings.create_from_env()

        assert settings.kubernetes.kubeconfig_path == "/etc/kube/config"
        assert settings.kubernetes.context == "kind-dev"
        assert settings.discovery.max_concurrency == 16
        assert settings.discovery.pass_timeout_seconds == 45.0
        assert settings.api.port == 9090
        assert settings.log_level == LogLevel.DEBUG

    @pytest.mark.unit
    def test_rejects_non_positive_concurrency(self, monkeypatch):
        monkeypatch.setenv("DISCOVERY_MAX_CONCURRENCY", "0")

        with pytest.raises(ValidationError):
            Settings()

    @pytest.mark.unit
    def test_rejects_unknown_log_format(self):
        with pytest.raises(ValidationError):
            Settings(log_format="xml")

    @pytest.mark.unit
    def test_discovery_dump_feeds_aggregator_config(self):
        dumped = Settings().discovery.model_dump(mode="json")

        assert {"max_concurrency", "list_timeout_seconds", "pass_timeout_seconds", "include_labels"} <= set(dumped)
