"""Application configuration settings.

This module provides the AppConfig class and settings singleton.
"""

from pathlib import Path
from typing import Annotated, Any, Literal

import structlog
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from ig_mcp_server.config.env_loader import load_env_files
from ig_mcp_server.config.validators import (
    resolve_path,
    split_csv,
    validate_log_format,
    validate_log_level,
)
from ig_mcp_server.telemetry.events import CONFIG_LOADED, CONFIG_LOAD_FAILED

log = structlog.get_logger(__name__)

SUPPORTED_TRANSPORTS = ("stdio", "sse", "streamable-http")
SUPPORTED_ENVIRONMENTS = ("kubernetes", "linux")


class AppConfig(BaseSettings):
    """Unified application configuration.

    Values come from (highest priority first) explicit keyword arguments
    (the CLI flags), ``IG_MCP_*`` environment variables, ``.env`` files and
    the defaults below.
    """

    model_config = SettingsConfigDict(
        env_prefix="IG_MCP_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # MCP server
    read_only: bool = Field(default=False, description="Hide tools that mutate the target")
    transport: Literal["stdio", "sse", "streamable-http"] = Field(
        default="stdio", description="Protocol transport"
    )
    transport_host: str = Field(default="localhost", description="Host for network transports")
    transport_port: int = Field(
        default=8080, ge=1, le=65535, description="Port for network transports"
    )

    # Inspektor Gadget
    environment: Literal["kubernetes", "linux"] = Field(
        default="kubernetes", description="Target environment of the gadget runtime"
    )
    linux_remote_address: str = Field(
        default="", description="Address of the gadget daemon when environment is linux"
    )
    gadget_images: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Explicit gadget images (comma-separated in env), e.g. 'trace_dns:latest'",
    )
    gadget_discoverer: str = Field(
        default="artifacthub", description="Gadget discoverer to use ('' disables it)"
    )
    artifacthub_official: bool = Field(
        default=True, description="Use only official gadgets from Artifact Hub"
    )

    # Telemetry
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(default="console", description="Log format (json or console)")

    # Metadata cache
    cache_dir: Path = Field(
        default=Path("~/.cache/ig-mcp-server"), description="Directory of the gadget info cache"
    )

    # Kubernetes access, forwarded to kubectl and helm
    kubeconfig: str | None = Field(default=None, description="Path to the kubeconfig file")
    kube_context: str | None = Field(default=None, description="kubeconfig context to use")
    kube_user: str | None = Field(default=None, description="kubeconfig user to use")
    kube_token: str | None = Field(default=None, description="Bearer token for authentication")

    @field_validator("gadget_images", mode="before")
    @classmethod
    def parse_gadget_images(cls, v: Any) -> list[str]:
        """Accept a comma-separated string or a list."""
        return split_csv(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        return validate_log_level(v)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        return validate_log_format(v)

    @field_validator("cache_dir", mode="before")
    @classmethod
    def resolve_cache_dir(cls, v: Path | str) -> Path:
        """Expand ``~`` in the cache directory."""
        return resolve_path(v)

    @model_validator(mode="after")
    def check_linux_remote_address(self) -> "AppConfig":
        """The linux environment cannot work without a daemon address."""
        if self.environment == "linux" and not self.linux_remote_address:
            raise ValueError("linux_remote_address must be set when environment is linux")
        return self


_settings: AppConfig | None = None


def load_app_config(**overrides: Any) -> AppConfig:
    """Load and validate application configuration.

    This function:
    1. Loads .env files (via env_loader)
    2. Creates AppConfig instance (reads from environment variables)
    3. Applies explicit overrides (None values are ignored)

    Args:
        **overrides: Field values that take priority over the environment.

    Returns:
        Validated AppConfig instance.

    Raises:
        ValidationError: If configuration validation fails.
    """
    load_env_files()

    explicit = {key: value for key, value in overrides.items() if value is not None}
    try:
        config = AppConfig(**explicit)
    except Exception as e:
        log.error(CONFIG_LOAD_FAILED, error=str(e), error_type=type(e).__name__)
        raise

    log.debug(
        CONFIG_LOADED,
        environment=config.environment,
        transport=config.transport,
        read_only=config.read_only,
        log_level=config.log_level,
    )
    return config


def get_settings() -> AppConfig:
    """Get the application settings singleton.

    Returns:
        AppConfig instance (singleton pattern).
    """
    global _settings
    if _settings is None:
        _settings = load_app_config()
    return _settings


def set_settings(config: AppConfig) -> None:
    """Replace the settings singleton (used by the CLI after applying flags)."""
    global _settings
    _settings = config
