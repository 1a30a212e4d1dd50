# config/settings.py
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from enum import Enum
from dotenv import load_dotenv

# Load .env file explicitly
load_dotenv()


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class InClusterMode(str, Enum):
    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


class KubernetesSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="K8S_")

    kubeconfig_path: Optional[str] = Field(None, description="Path to kubeconfig file (defaults to $KUBECONFIG or ~/.kube/config)")
    context: Optional[str] = Field(None, description="Kubernetes context to use")
    in_cluster: InClusterMode = Field(InClusterMode.AUTO, description="Use the in-cluster service account config")
    io_workers: int = Field(64, ge=1, description="Worker threads for blocking Kubernetes API calls")
    request_timeout_seconds: float = Field(60.0, gt=0, description="Socket timeout passed to every API request, health checks included")


class DiscoverySettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DISCOVERY_")

    max_concurrency: Optional[int] = Field(None, ge=1, description="Cap on concurrent list calls (unset = unbounded)")
    list_timeout_seconds: Optional[float] = Field(60.0, gt=0, description="Timeout for a single kind's list call")
    pass_timeout_seconds: Optional[float] = Field(300.0, gt=0, description="Deadline for a whole aggregation pass")
    catalog_timeout_seconds: Optional[float] = Field(30.0, gt=0, description="Timeout for the discovery catalog fetch")
    retry_attempts: int = Field(1, ge=1, description="Attempts for the discovery catalog fetch")
    retry_backoff_factor: float = Field(1.5, description="Backoff factor for catalog retries")
    include_labels: bool = Field(True, description="Include per-object labels in summaries")


class APISettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = Field("0.0.0.0", description="API host")
    port: int = Field(8080, description="API port")
    access_log: bool = Field(True, description="Enable access logging")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    environment: Environment = Field(Environment.DEVELOPMENT, description="Environment")
    debug: bool = Field(False, description="Debug mode")
    log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
    log_format: str = Field("text", description="Log format (json or text)")
    log_config_path: Optional[str] = Field(None, description="YAML logging dictConfig file")

    kubernetes: KubernetesSettings = Field(default_factory=lambda: KubernetesSettings())
    discovery: DiscoverySettings = Field(default_factory=lambda: DiscoverySettings())
    api: APISettings = Field(default_factory=lambda: APISettings())

    @field_validator('environment', mode='before')
    @classmethod
    def validate_environment(cls, v):
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v):
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @field_validator('log_format', mode='before')
    @classmethod
    def validate_log_format(cls, v):
        if isinstance(v, str) and v.lower() not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v.lower() if isinstance(v, str) else v

    @classmethod
    def create_from_env(cls) -> "Settings":
        """Create settings instance from environment variables."""
        return cls()
