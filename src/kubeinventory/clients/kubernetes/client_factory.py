# src/kubeinventory/clients/kubernetes/client_factory.py
"""Kubernetes client factory."""

from typing import Dict, Any, Optional
import structlog

from kubeinventory.core.exceptions import ConfigurationException
from .k8s_client import KubernetesClient

logger = structlog.get_logger(__name__)

_IN_CLUSTER_MODES = ("auto", "always", "never")


class KubernetesClientFactory:
    """Factory for creating Kubernetes clients from ``KubernetesSettings`` dumps."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.kubeconfig_path = config.get("kubeconfig_path")
        self.context = config.get("context")
        in_cluster = config.get("in_cluster") or "auto"
        self.in_cluster = str(getattr(in_cluster, "value", in_cluster))

        if self.in_cluster not in _IN_CLUSTER_MODES:
            raise ConfigurationException(
                f"in_cluster must be one of {', '.join(_IN_CLUSTER_MODES)}, got {self.in_cluster!r}"
            )

        self.logger = logger.bind(factory="kubernetes")

    def create_client(self, kubeconfig_data: Optional[bytes] = None) -> KubernetesClient:
        """Create a (not yet connected) Kubernetes client."""
        self.logger.debug("Creating Kubernetes client", context=self.context, in_cluster=self.in_cluster)
        return KubernetesClient(
            config_dict=self.config,
            kubeconfig_path=self.kubeconfig_path,
            context=self.context,
            kubeconfig_data=kubeconfig_data,
            in_cluster=self.in_cluster,
        )
