"""Semantic event constants for structured logging.

All log events should use these constants rather than magic strings to ensure
consistency and enable reliable querying and analysis.
"""

# Server lifecycle events
SERVER_STARTING = "server_starting"
SERVER_SHUTDOWN = "server_shutdown"
SHUTDOWN_SIGNAL_RECEIVED = "shutdown_signal_received"
FATAL_ERROR = "fatal_error"
BACKGROUND_TASK_FAILED = "background_task_error"

# Configuration events
CONFIG_LOADED = "app_config_loaded"
CONFIG_LOAD_FAILED = "app_config_load_failed"
ENV_FILES_LOADED = "env_files_loaded"
ENV_FILES_NOT_FOUND = "no_env_files_found"

# Gadget manager events
GADGET_RUN_STARTED = "gadget_run_started"
GADGET_RUN_COMPLETED = "gadget_run_completed"
GADGET_RUN_CANCELLED = "gadget_run_cancelled"
GADGET_DETACHED = "gadget_detached"
GADGET_ATTACHED = "gadget_attached"
GADGET_STOPPED = "gadget_stopped"
GADGET_RUNTIME_COMMAND = "gadget_runtime_command"
GADGET_OUTPUT_NOT_JSON = "gadget_output_not_json"
GADGET_TOOL_INVOKED = "gadget_tool_invoked"
GADGET_INSTANCE_ACTION = "gadget_instance_action"

# Metadata fetch and cache events
GADGET_VERSION_UNAVAILABLE = "gadget_version_unavailable"
GADGET_INFO_CACHE_HIT = "gadget_info_cache_hit"
GADGET_INFO_FETCH_RETRY = "gadget_info_fetch_retry"
GADGET_INFO_FETCH_SKIPPED = "gadget_info_fetch_skipped"
GADGET_INFO_FETCH_UNCACHED = "gadget_info_fetch_uncached"
GADGET_INFO_FETCH_COMPLETED = "gadget_info_fetch_completed"
CACHE_LOAD_MISS = "cache_load_miss"
CACHE_SAVE_FAILED = "cache_save_failed"
CACHE_FILE_REPLACED = "cache_file_replaced"

# Discovery events
DISCOVERY_STARTED = "discovery_started"
DISCOVERY_COMPLETED = "discovery_completed"
DISCOVERY_FAILED = "discovery_failed"
DISCOVERY_LISTED = "discovery_listed"
DISCOVERY_ENTRY_SKIPPED = "discovery_entry_skipped"

# Tool registry events
TOOL_REGISTERED = "tool_registered"
TOOL_REGISTRY_UPDATED = "tool_registry_updated"
TOOL_REGISTRY_REFRESH = "tool_registry_refresh"
TOOL_BUILD_SKIPPED = "tool_build_skipped"
TOOL_CALL_STARTED = "tool_call_started"
TOOL_CALL_FAILED = "tool_call_failed"
TOOL_LIST_CHANGED_NOT_SENT = "tool_list_changed_not_sent"

# Deployment lifecycle events
DEPLOYMENT_STATE_CHECKED = "deployment_state_checked"
DEPLOYMENT_CHECK_FAILED = "deployment_check_failed"
DEPLOYMENT_ACTION = "deployment_action"
CHART_VERSION_RESOLVED = "chart_version_resolved"
LATEST_RELEASE_LOOKUP_FAILED = "latest_release_lookup_failed"
