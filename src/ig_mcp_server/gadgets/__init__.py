"""Gadget execution and management.

This module provides:
- GadgetManager, the run/stop/inspect abstraction over the remote runtime
- The runtime interface and its CLI-backed implementation
- Descriptor and instance models
- The output truncation policy
"""

from ig_mcp_server.gadgets.manager import (
    CREATED_BY,
    GadgetManager,
    GadgetManagerError,
    new_gadget_manager,
)
from ig_mcp_server.gadgets.results import (
    MAX_RESULT_LEN,
    ExecutionResult,
    TruncationMode,
    govern,
)
from ig_mcp_server.gadgets.runtime import (
    CliGadgetRuntime,
    GadgetRuntime,
    GadgetRuntimeError,
    RunRequest,
    RuntimeInstance,
)
from ig_mcp_server.gadgets.types import (
    GadgetDataSource,
    GadgetDescriptor,
    GadgetField,
    GadgetInstance,
    GadgetMetadata,
    GadgetParam,
)

__all__ = [
    "CREATED_BY",
    "GadgetManager",
    "GadgetManagerError",
    "new_gadget_manager",
    "MAX_RESULT_LEN",
    "ExecutionResult",
    "TruncationMode",
    "govern",
    "CliGadgetRuntime",
    "GadgetRuntime",
    "GadgetRuntimeError",
    "RunRequest",
    "RuntimeInstance",
    "GadgetDataSource",
    "GadgetDescriptor",
    "GadgetField",
    "GadgetInstance",
    "GadgetMetadata",
    "GadgetParam",
]
