from .settings import Settings, KubernetesSettings, DiscoverySettings, APISettings

__all__ = ["Settings", "KubernetesSettings", "DiscoverySettings", "APISettings"]
