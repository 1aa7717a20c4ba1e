"""Configuration loader for extract-score runs.

Provides typed configuration loading from YAML files with
sensible defaults and validation using Pydantic.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator


class PathsConfig(BaseModel):
    """Configuration for file system paths."""

    model_config = {"frozen": True}

    store_root: Path = Field(default=Path("."))


class RegistryConfig(BaseModel):
    """Modules imported at start-up to register extractor and scorer classes."""

    model_config = {"frozen": True}

    modules: list[str] = Field(default_factory=list)


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    model_config = {"frozen": True}

    level: str = Field(default="INFO")
    format: str = Field(default="%(asctime)s %(levelname)s %(name)s: %(message)s")

    @field_validator("level")
    @classmethod
    def check_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


class EngineConfig(BaseModel):
    """Configuration for the local execution engine."""

    model_config = {"frozen": True}

    write_timestamp: int | None = Field(default=None, ge=0)


class RunnerConfig(BaseModel):
    """Complete runner configuration."""

    model_config = {"frozen": True}

    paths: PathsConfig = Field(default_factory=PathsConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)

    def with_base_path(self, base_path: Path) -> "RunnerConfig":
        """Return a new config with paths resolved against base_path."""
        store_root = self.paths.store_root
        if not store_root.is_absolute():
            store_root = base_path / store_root

        return self.model_copy(update={"paths": PathsConfig(store_root=store_root)})

    def with_modules(self, modules: list[str]) -> "RunnerConfig":
        """Return a new config that also imports the given registry modules."""
        if not modules:
            return self
        merged = list(dict.fromkeys([*self.registry.modules, *modules]))
        return self.model_copy(update={"registry": RegistryConfig(modules=merged)})


def load_config(config_path: Path | str, base_path: Path | None = None) -> RunnerConfig:
    """Load runner configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file
        base_path: Optional base path for resolving relative paths.
                   Defaults to the parent directory of the config file.

    Returns:
        RunnerConfig with all settings loaded

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If configuration validation fails
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    if base_path is None:
        base_path = config_path.parent

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    config = RunnerConfig.model_validate(data)
    return config.with_base_path(base_path)


def get_default_config(base_path: Path | None = None) -> RunnerConfig:
    """Get default configuration without loading from file.

    Args:
        base_path: Optional base path for resolving relative paths.

    Returns:
        RunnerConfig with all default values
    """
    config = RunnerConfig()
    if base_path:
        return config.with_base_path(base_path)
    return config
