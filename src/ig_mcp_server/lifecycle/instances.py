"""The ig_gadgets tool: list, sample and stop running gadget instances."""

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import orjson

from ig_mcp_server.gadgets.manager import GadgetManager, GadgetManagerError
from ig_mcp_server.telemetry import GADGET_INSTANCE_ACTION, get_logger
from ig_mcp_server.tools.types import ReadOnlyHint, ToolDescriptor, ToolResult, string_argument

log = get_logger(__name__)

INSTANCE_TOOL_NAME = "ig_gadgets"


class GadgetAction(str, Enum):
    """Actions of the ig_gadgets tool."""

    GET_RESULTS = "get_results"
    STOP_GADGET = "stop_gadget"
    LIST_RUNNING_GADGETS = "list_running_gadgets"

    @property
    def needs_gadget_id(self) -> bool:
        return self is not GadgetAction.LIST_RUNNING_GADGETS


GADGET_ACTIONS = [action.value for action in GadgetAction]

_ActionHandler = Callable[[str], Awaitable[ToolResult]]


class InstanceLifecycle:
    """Handler of the ig_gadgets tool."""

    def __init__(self, manager: GadgetManager) -> None:
        self.manager = manager
        self._handlers: dict[GadgetAction, _ActionHandler] = {
            GadgetAction.GET_RESULTS: self.get_results,
            GadgetAction.STOP_GADGET: self.stop,
            GadgetAction.LIST_RUNNING_GADGETS: self._list_running,
        }

    async def handle(self, arguments: dict[str, Any]) -> ToolResult:
        name = string_argument(arguments, "action")
        if not name:
            return ToolResult.error(
                "No action specified, must be one of: " + ", ".join(GADGET_ACTIONS)
            )
        try:
            action = GadgetAction(name)
        except ValueError:
            return ToolResult.error(
                "Invalid action specified, must be one of: " + ", ".join(GADGET_ACTIONS)
            )

        gadget_id = string_argument(arguments, "gadget_id")
        if action.needs_gadget_id and not gadget_id:
            return ToolResult.error(f"A gadget_id must be specified for {action.value}")

        log.debug(GADGET_INSTANCE_ACTION, action=action.value, gadget_id=gadget_id)
        return await self._handlers[action](gadget_id)

    async def _list_running(self, gadget_id: str) -> ToolResult:
        return await self.list_running()

    async def list_running(self) -> ToolResult:
        try:
            instances = await self.manager.list_gadgets()
        except GadgetManagerError as e:
            return ToolResult.error(f"Failed to list gadgets: {e}")
        if not instances:
            return ToolResult.ok("No running gadgets found")
        return ToolResult.ok(orjson.dumps([i.to_json_dict() for i in instances]).decode())

    async def get_results(self, gadget_id: str) -> ToolResult:
        try:
            output = await self.manager.get_results(gadget_id)
        except GadgetManagerError as e:
            return ToolResult.error(f"Failed to get gadget results: {e}")
        return ToolResult.ok(output)

    async def stop(self, gadget_id: str) -> ToolResult:
        try:
            await self.manager.stop(gadget_id)
        except GadgetManagerError as e:
            return ToolResult.error(f"Failed to stop gadget: {e}")
        return ToolResult.ok(f"Gadget with ID {gadget_id} has been stopped")


def get_instance_tool(manager: GadgetManager) -> ToolDescriptor:
    """Build the ig_gadgets tool."""
    lifecycle = InstanceLifecycle(manager)
    return ToolDescriptor(
        name=INSTANCE_TOOL_NAME,
        description="Manage running gadgets",
        handler=lifecycle.handle,
        input_schema={
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "description": (
                        "Lifecycle action to perform: "
                        "list_running_gadgets(list running gadgets), "
                        "stop_gadget(stop a running gadget using its ID), "
                        "get_results(get results of a running gadget using its ID, "
                        "only available before stopping it)"
                    ),
                    "enum": GADGET_ACTIONS,
                },
                "gadget_id": {
                    "type": "string",
                    "description": (
                        "ID of the gadget to stop or get results from, "
                        "required for stop_gadget and get_results"
                    ),
                },
            },
        },
        read_only=ReadOnlyHint.MUTATING,
    )
