"""Configuration management for nimctl using Pydantic."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nimctl.core.exceptions import ConfigError
from nimctl.core.output import OutputFormat
from nimctl.core.logging import LogLevel
from nimctl.core.utils import deep_merge


class EnvSettings(BaseSettings):
    """Overrides read from NIMCTL_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="NIMCTL_", extra="ignore")

    kubeconfig: str | None = None
    context: str | None = None
    namespace: str | None = None


class K8sConfig(BaseModel):
    """Kubernetes connection configuration."""

    kubeconfig: str | None = None
    context: str | None = None
    namespace: str = "default"
    request_timeout: int = 30

    def get_kubeconfig(self) -> str | None:
        """Get kubeconfig path from environment or config.

        KUBECONFIG itself is left to the kubernetes client, which understands
        path lists.
        """
        return EnvSettings().kubeconfig or self.kubeconfig

    def get_context(self) -> str | None:
        """Get kubeconfig context from environment or config."""
        return EnvSettings().context or self.context

    def get_namespace(self) -> str:
        """Get default namespace from environment or config."""
        return EnvSettings().namespace or self.namespace or "default"


class TailConfig(BaseModel):
    """Log and event tailing settings."""

    buffer_size: int = 1024
    follow: bool = True
    timestamps: bool = False
    nimservice_selector: str = "app={name}"
    nimcache_selector: str = "job-name={name}-job"

    @field_validator("buffer_size")
    @classmethod
    def validate_buffer_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("buffer_size must be at least 1")
        return v

    @field_validator("nimservice_selector", "nimcache_selector")
    @classmethod
    def validate_selector(cls, v: str) -> str:
        if "{name}" not in v:
            raise ValueError("selector template must contain '{name}'")
        return v


class DeployConfig(BaseModel):
    """Defaults applied to NIMServices created by 'deploy'."""

    auth_secret: str = "ngc-api-secret"
    pull_secret: str = "ngc-api-secret"
    pull_policy: str = "IfNotPresent"
    service_port: int = 8000
    service_type: str = "ClusterIP"
    gpu_limit: str = "1"

    @field_validator("pull_policy")
    @classmethod
    def validate_pull_policy(cls, v: str) -> str:
        if v not in ("Always", "IfNotPresent", "Never"):
            raise ValueError("pull_policy must be 'Always', 'IfNotPresent', or 'Never'")
        return v


class ProfileConfig(BaseModel):
    """Profile configuration grouping all settings."""

    k8s: K8sConfig = Field(default_factory=K8sConfig)
    tail: TailConfig = Field(default_factory=TailConfig)
    deploy: DeployConfig = Field(default_factory=DeployConfig)


class GlobalConfig(BaseModel):
    """Global settings."""

    output_format: OutputFormat = OutputFormat.TABLE
    color: str = "auto"  # auto, always, never
    verbosity: LogLevel = LogLevel.WARNING

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        if v not in ("auto", "always", "never"):
            raise ValueError("color must be 'auto', 'always', or 'never'")
        return v


class NimCtlConfig(BaseModel):
    """Main configuration model."""

    model_config = {"populate_by_name": True}

    version: str = "1"
    global_settings: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    profiles: dict[str, ProfileConfig] = Field(default_factory=lambda: {"default": ProfileConfig()})

    def get_profile(self, name: str | None = None) -> ProfileConfig:
        """Get a profile by name, defaulting to 'default'."""
        profile_name = name or "default"
        if profile_name not in self.profiles:
            raise ConfigError(f"Profile '{profile_name}' not found")
        return self.profiles[profile_name]


class ConfigLoader:
    """Loads and merges configuration from multiple sources."""

    CONFIG_FILENAMES = ["nimctl.yaml", "nimctl.yml", ".nimctl.yaml", ".nimctl.yml"]

    def __init__(self):
        self._config: NimCtlConfig | None = None

    def load(
        self,
        config_file: str | Path | None = None,
        profile: str | None = None,
    ) -> NimCtlConfig:
        """Load configuration from files.

        Priority (highest to lowest):
        1. Explicitly specified config file
        2. Project config (./nimctl.yaml, searched upwards)
        3. User config (~/.nimctl/config.yaml)

        Args:
            config_file: Optional explicit config file path
            profile: Profile name to validate against the loaded config

        Returns:
            Merged configuration
        """
        configs: list[dict[str, Any]] = []

        user_config_path = Path.home() / ".nimctl" / "config.yaml"
        if user_config_path.exists():
            configs.append(self._load_yaml_file(user_config_path))

        project_config = self._find_project_config()
        if project_config:
            configs.append(self._load_yaml_file(project_config))

        if config_file:
            config_path = Path(config_file)
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_file}")
            configs.append(self._load_yaml_file(config_path))

        merged: dict[str, Any] = {}
        for config in configs:
            merged = deep_merge(merged, config)

        try:
            self._config = NimCtlConfig(**merged)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration: {e}")

        if profile:
            self._config.get_profile(profile)
        return self._config

    def _find_project_config(self) -> Path | None:
        """Find project config file in current or parent directories."""
        current = Path.cwd()

        while current != current.parent:
            for filename in self.CONFIG_FILENAMES:
                config_path = current / filename
                if config_path.exists():
                    return config_path
            current = current.parent

        return None

    def _load_yaml_file(self, path: Path) -> dict[str, Any]:
        """Load a YAML config file."""
        try:
            with open(path) as f:
                content = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}")
        if not isinstance(content, dict):
            raise ConfigError(f"Invalid config in {path}: expected a mapping")
        return content


# Global config loader instance
_config_loader = ConfigLoader()


def load_config(
    config_file: str | Path | None = None,
    profile: str | None = None,
) -> NimCtlConfig:
    """Load nimctl configuration.

    Args:
        config_file: Optional explicit config file path
        profile: Profile name to use

    Returns:
        Loaded configuration
    """
    return _config_loader.load(config_file, profile)


def get_default_config() -> NimCtlConfig:
    """Get default configuration without loading from files."""
    return NimCtlConfig()
