"""Configuration management for Catalyst.

This module defines the configuration schema using Pydantic settings,
supporting TOML files, environment variables, and programmatic overrides.

Configuration loading priority (highest to lowest):
1. Environment variables (CATALYST_* prefix)
2. TOML configuration file and programmatic overrides (CatalystConfig kwargs)
3. Default values defined in this module

Example TOML configuration:
    [storage]
    directory = "~/.local/share/catalyst"
    debounce_seconds = 2.0

    [generator]
    model = "llama3.1"

Example environment variable override:
    CATALYST_GENERATOR__URL="http://gpu-box:11434"
    CATALYST_WORKSPACE__ROLE=Viewer
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        file: Optional log file path (None for stderr only)
        rotation_size_mb: Log file rotation size in megabytes
        retention_count: Number of rotated log files to keep
    """

    model_config = SettingsConfigDict(
        env_prefix="CATALYST_LOGGING__",
        extra="forbid",
    )

    level: str = Field(default="WARNING")
    format: str = Field(default="console")
    file: Path | None = Field(default=None)
    rotation_size_mb: int = Field(default=10, ge=1, le=1000)
    retention_count: int = Field(default=5, ge=1, le=100)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is recognized."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format is recognized."""
        valid_formats = {"json", "console"}
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return v_lower


class StorageConfig(BaseSettings):
    """Durable state storage configuration.

    Attributes:
        directory: Directory holding one JSON file per storage key
        state_key: Key under which the (phase, project) pair is saved
        debounce_seconds: Delay before an autosave is written (0 saves immediately)
    """

    model_config = SettingsConfigDict(
        env_prefix="CATALYST_STORAGE__",
        extra="forbid",
    )

    directory: Path = Field(default=Path.home() / ".local" / "share" / "catalyst")
    state_key: str = Field(default="ai-project-catalyst-state", min_length=1)
    debounce_seconds: float = Field(default=0.0, ge=0.0, le=60.0)


class GeneratorConfig(BaseSettings):
    """Artifact generator (Ollama) configuration.

    Attributes:
        url: Base URL of the Ollama API server
        model: Model used for artifact generation
        timeout_seconds: HTTP request timeout in seconds
        max_retries: Retry attempts on transient failures
        initial_backoff: First retry delay in seconds, doubled per attempt
    """

    model_config = SettingsConfigDict(
        env_prefix="CATALYST_GENERATOR__",
        extra="forbid",
    )

    url: str = Field(default="http://localhost:11434")
    model: str = Field(default="llama3.1")
    timeout_seconds: int = Field(default=120, ge=1, le=1800)
    max_retries: int = Field(default=3, ge=0, le=10)
    initial_backoff: float = Field(default=1.0, ge=0.0, le=60.0)


class WorkspaceConfig(BaseSettings):
    """Workspace behaviour configuration.

    Attributes:
        role: Role of the local user (Owner, Editor or Viewer)
    """

    model_config = SettingsConfigDict(
        env_prefix="CATALYST_WORKSPACE__",
        extra="forbid",
    )

    role: str = Field(default="Owner")

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        """Validate role is recognized."""
        valid_roles = {"Owner", "Editor", "Viewer"}
        v_title = v.strip().title()
        if v_title not in valid_roles:
            raise ValueError(f"Invalid role: {v}. Must be one of {valid_roles}")
        return v_title


class CatalystConfig(BaseSettings):
    """Root configuration for Catalyst.

    Environment variable format for nested config:
        CATALYST_<SECTION>__<KEY>=value

    Example:
        CATALYST_STORAGE__DIRECTORY="/tmp/catalyst"
        CATALYST_GENERATOR__MAX_RETRIES=5
    """

    model_config = SettingsConfigDict(
        env_prefix="CATALYST_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # TOML values arrive as init kwargs; environment variables take precedence
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def load_config(config_path: Path | None = None) -> CatalystConfig:
    """Load configuration from TOML file with environment variable overrides.

    Configuration search order (first found is used):
    1. config_path if explicitly provided
    2. ./catalyst.toml (current directory)
    3. ~/.config/catalyst/config.toml (user config directory)

    Args:
        config_path: Explicit path to TOML config file. If None, searches
                    default locations.

    Returns:
        CatalystConfig: Fully resolved configuration instance.

    Raises:
        FileNotFoundError: If config_path is explicitly provided but doesn't exist.
        ValueError: If TOML file contains invalid configuration.
    """
    toml_data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        selected_path = config_path
    else:
        search_paths = [
            Path.cwd() / "catalyst.toml",
            Path.home() / ".config" / "catalyst" / "config.toml",
        ]
        selected_path = None
        for path in search_paths:
            if path.exists():
                selected_path = path
                break

    if selected_path is not None:
        with open(selected_path, "rb") as f:
            toml_data = tomli.load(f)

    # Pydantic overlays environment variables on top of the TOML values
    try:
        return CatalystConfig(**toml_data)
    except Exception as e:
        if selected_path:
            raise ValueError(
                f"Invalid configuration in {selected_path}: {e}"
            ) from e
        else:
            raise ValueError(f"Invalid configuration: {e}") from e
