"""Telemetry module for structured logging.

This module provides:
- Structured logging via structlog
- Semantic event constants
"""

from ig_mcp_server.telemetry.events import (
    BACKGROUND_TASK_FAILED,
    CACHE_FILE_REPLACED,
    CACHE_LOAD_MISS,
    CACHE_SAVE_FAILED,
    CHART_VERSION_RESOLVED,
    CONFIG_LOADED,
    CONFIG_LOAD_FAILED,
    DEPLOYMENT_ACTION,
    DEPLOYMENT_CHECK_FAILED,
    DEPLOYMENT_STATE_CHECKED,
    DISCOVERY_COMPLETED,
    DISCOVERY_ENTRY_SKIPPED,
    DISCOVERY_FAILED,
    DISCOVERY_LISTED,
    DISCOVERY_STARTED,
    ENV_FILES_LOADED,
    ENV_FILES_NOT_FOUND,
    FATAL_ERROR,
    GADGET_ATTACHED,
    GADGET_DETACHED,
    GADGET_INFO_CACHE_HIT,
    GADGET_INFO_FETCH_COMPLETED,
    GADGET_INFO_FETCH_RETRY,
    GADGET_INFO_FETCH_SKIPPED,
    GADGET_INFO_FETCH_UNCACHED,
    GADGET_INSTANCE_ACTION,
    GADGET_OUTPUT_NOT_JSON,
    GADGET_RUNTIME_COMMAND,
    GADGET_RUN_CANCELLED,
    GADGET_RUN_COMPLETED,
    GADGET_RUN_STARTED,
    GADGET_STOPPED,
    GADGET_TOOL_INVOKED,
    GADGET_VERSION_UNAVAILABLE,
    LATEST_RELEASE_LOOKUP_FAILED,
    SERVER_SHUTDOWN,
    SERVER_STARTING,
    SHUTDOWN_SIGNAL_RECEIVED,
    TOOL_BUILD_SKIPPED,
    TOOL_CALL_FAILED,
    TOOL_CALL_STARTED,
    TOOL_LIST_CHANGED_NOT_SENT,
    TOOL_REGISTERED,
    TOOL_REGISTRY_REFRESH,
    TOOL_REGISTRY_UPDATED,
)
from ig_mcp_server.telemetry.logger import configure_logging, get_logger

__all__ = [
    "get_logger",
    "configure_logging",
    # Event constants
    "SERVER_STARTING",
    "SERVER_SHUTDOWN",
    "SHUTDOWN_SIGNAL_RECEIVED",
    "FATAL_ERROR",
    "BACKGROUND_TASK_FAILED",
    "CONFIG_LOADED",
    "CONFIG_LOAD_FAILED",
    "ENV_FILES_LOADED",
    "ENV_FILES_NOT_FOUND",
    "GADGET_RUN_STARTED",
    "GADGET_RUN_COMPLETED",
    "GADGET_RUN_CANCELLED",
    "GADGET_DETACHED",
    "GADGET_ATTACHED",
    "GADGET_STOPPED",
    "GADGET_RUNTIME_COMMAND",
    "GADGET_OUTPUT_NOT_JSON",
    "GADGET_TOOL_INVOKED",
    "GADGET_INSTANCE_ACTION",
    "GADGET_VERSION_UNAVAILABLE",
    "GADGET_INFO_CACHE_HIT",
    "GADGET_INFO_FETCH_RETRY",
    "GADGET_INFO_FETCH_SKIPPED",
    "GADGET_INFO_FETCH_UNCACHED",
    "GADGET_INFO_FETCH_COMPLETED",
    "CACHE_LOAD_MISS",
    "CACHE_SAVE_FAILED",
    "CACHE_FILE_REPLACED",
    "DISCOVERY_STARTED",
    "DISCOVERY_COMPLETED",
    "DISCOVERY_FAILED",
    "DISCOVERY_LISTED",
    "DISCOVERY_ENTRY_SKIPPED",
    "TOOL_REGISTERED",
    "TOOL_REGISTRY_UPDATED",
    "TOOL_REGISTRY_REFRESH",
    "TOOL_BUILD_SKIPPED",
    "TOOL_CALL_STARTED",
    "TOOL_CALL_FAILED",
    "TOOL_LIST_CHANGED_NOT_SENT",
    "DEPLOYMENT_STATE_CHECKED",
    "DEPLOYMENT_CHECK_FAILED",
    "DEPLOYMENT_ACTION",
    "CHART_VERSION_RESOLVED",
    "LATEST_RELEASE_LOOKUP_FAILED",
]
