"""Configuration management for the Inspektor Gadget MCP server.

Settings are read from ``IG_MCP_*`` environment variables, ``.env`` files
and CLI flags, and validated with Pydantic.
"""

from ig_mcp_server.config.settings import (
    SUPPORTED_ENVIRONMENTS,
    SUPPORTED_TRANSPORTS,
    AppConfig,
    get_settings,
    load_app_config,
    set_settings,
)

__all__ = [
    "AppConfig",
    "get_settings",
    "load_app_config",
    "set_settings",
    "SUPPORTED_ENVIRONMENTS",
    "SUPPORTED_TRANSPORTS",
]
