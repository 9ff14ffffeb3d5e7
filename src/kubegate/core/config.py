"""Configuration management for kubegate."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from kubegate.core.exceptions import ConfigurationError

DEFAULT_CONTROLLER_NAME = "apisix.apache.org/apisix-ingress-controller"


class TranslatorConfig(BaseModel):
    """Settings threaded through every translation and validation call.

    Instances are immutable so a single value can be shared by concurrent
    admission requests.
    """

    default_weight: int = Field(100, ge=0, description="Weight for backends that omit one")
    default_timeout: int = Field(60, gt=0, description="Upstream timeout in seconds")
    ingress_class: str = Field("apisix", description="IngressClass name served by us")
    controller_name: str = Field(
        DEFAULT_CONTROLLER_NAME, description="spec.controller value of our IngressClass"
    )
    report_all_conflicts: bool = Field(
        False, description="Report every pre-existing holder of a host, not just the first"
    )

    class Config:
        """Pydantic config."""

        frozen = True


class KubernetesConfig(BaseModel):
    """Kubernetes API access configuration."""

    kubeconfig_path: str | None = None
    context: str | None = None


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    output: str = "stdout"


class KubegateConfig(BaseModel):
    """Main kubegate configuration."""

    translator: TranslatorConfig = Field(default_factory=TranslatorConfig)
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "KubegateConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            KubegateConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        config_path = Path(path).expanduser()

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f)
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        try:
            return cls(**(data or {}))
        except Exception as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation
        """
        return self.model_dump()
