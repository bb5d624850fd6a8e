"""Exposed tools.

This module provides:
- Tool descriptor and result types
- The concurrent descriptor fetcher with its cache round
- Builders for functional gadget tools and not-deployed placeholders
"""

from ig_mcp_server.tools.builder import (
    DEFAULT_DURATION_SECONDS,
    MAP_FETCH_INTERVAL_PARAM,
    build_gadget_tool,
    build_gadget_tools,
    gadget_handler,
    normalize_tool_name,
)
from ig_mcp_server.tools.ephemeral import (
    NOT_DEPLOYED_MESSAGE,
    build_ephemeral_tools,
    extract_name,
)
from ig_mcp_server.tools.fetcher import (
    MAX_ATTEMPTS,
    MAX_CONCURRENCY,
    RETRY_DELAY_SECONDS,
    collect_gadget_infos,
    fetch_gadget_infos,
    fetch_with_retries,
)
from ig_mcp_server.tools.types import (
    ReadOnlyHint,
    ToolArgumentError,
    ToolDescriptor,
    ToolHandler,
    ToolResult,
    string_argument,
)

__all__ = [
    "DEFAULT_DURATION_SECONDS",
    "MAP_FETCH_INTERVAL_PARAM",
    "build_gadget_tool",
    "build_gadget_tools",
    "gadget_handler",
    "normalize_tool_name",
    "NOT_DEPLOYED_MESSAGE",
    "build_ephemeral_tools",
    "extract_name",
    "MAX_ATTEMPTS",
    "MAX_CONCURRENCY",
    "RETRY_DELAY_SECONDS",
    "collect_gadget_infos",
    "fetch_gadget_infos",
    "fetch_with_retries",
    "ReadOnlyHint",
    "ToolArgumentError",
    "ToolDescriptor",
    "ToolHandler",
    "ToolResult",
    "string_argument",
]
