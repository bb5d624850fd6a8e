"""Build gadget tools from gadget descriptors.

Each descriptor becomes one tool named after its metadata name. The tool
description is rendered from a fixed template listing the fields of the
first data source, and the handler runs the gadget through the
GadgetManager, in the foreground for a bounded duration or detached in the
background.
"""

from string import Template
from typing import Any

from ig_mcp_server.gadgets.manager import GadgetManager, GadgetManagerError
from ig_mcp_server.gadgets.types import GadgetDescriptor, GadgetMetadata
from ig_mcp_server.telemetry import GADGET_TOOL_INVOKED, TOOL_BUILD_SKIPPED, get_logger
from ig_mcp_server.tools.types import (
    ReadOnlyHint,
    ToolArgumentError,
    ToolDescriptor,
    ToolHandler,
    ToolResult,
)

log = get_logger(__name__)

TOOL_NAME_PREFIX = "gadget_"
DEFAULT_DURATION_SECONDS = 10.0
# Halved for foreground runs to bound the volume of sampled map data
MAP_FETCH_INTERVAL_PARAM = "operator.oci.ebpf.map-fetch-interval"

DESCRIPTION_TEMPLATE = Template(
    """$description

Tool $name runs this gadget in the $environment environment and returns the \
events it collected, one JSON object per line inside <results> tags. Output \
larger than 64 KiB is truncated and marked with <isTruncated>true</isTruncated>.

Set "duration" to the number of seconds to run (default 10). A duration of 0 \
starts the gadget in the background and returns its ID; use the ig_gadgets \
tool to read its results or stop it.

Gadget parameters go in "params" as string values.

Fields of the emitted events:
$fields
"""
)


def normalize_tool_name(name: str) -> str:
    """Tool name for a gadget metadata name, e.g. "trace dns" -> "gadget_trace_dns"."""
    return TOOL_NAME_PREFIX + name.replace(" ", "_")


def render_description(environment: str, metadata: GadgetMetadata, info: GadgetDescriptor) -> str:
    """Render the tool description of a gadget."""
    rows = []
    # Only the first data source is described
    if info.data_sources:
        for field in info.data_sources[0].fields:
            row = f"- {field.full_name}"
            if field.description:
                row += f": {field.description}"
            if field.possible_values:
                row += f" (possible values: {field.possible_values})"
            rows.append(row)

    return DESCRIPTION_TEMPLATE.substitute(
        name=normalize_tool_name(metadata.name),
        description=metadata.description,
        environment=environment,
        fields="\n".join(rows) if rows else "- (no fields declared)",
    )


def input_schema(info: GadgetDescriptor) -> dict[str, Any]:
    """JSON schema of a gadget tool's arguments."""
    properties = {
        param.full_key: {"type": "string", "description": param.description}
        for param in info.params
    }
    return {
        "type": "object",
        "properties": {
            "params": {
                "type": "object",
                "description": "key-value pairs of parameters to pass to the gadget",
                "properties": properties,
            },
            "duration": {
                "type": "number",
                "description": (
                    "Duration in seconds to run the gadget. "
                    "Use 0 to run in background/continuously."
                ),
            },
        },
        "required": ["params"],
    }


def format_interval(seconds: float) -> str:
    """Format seconds as a duration string accepted by the gadget runtime."""
    return f"{seconds:g}s"


def resolve_run_arguments(
    info: GadgetDescriptor, arguments: dict[str, Any] | None
) -> tuple[float, dict[str, str]]:
    """Compute duration and parameter map of a gadget call.

    Args:
        info: Descriptor providing the parameter defaults.
        arguments: Call arguments.

    Returns:
        Tuple of (duration in seconds, parameters). A duration of 0 means
        the gadget runs detached.

    Raises:
        ToolArgumentError: If ``duration`` is negative or a value in ``params`` is
            not a string.
    """
    duration = DEFAULT_DURATION_SECONDS
    params = info.default_params()
    if not arguments:
        return duration, params

    value = arguments.get("duration")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value < 0:
            raise ToolArgumentError(f"invalid duration {value}: must not be negative")
        duration = float(value)

    if duration != 0 and MAP_FETCH_INTERVAL_PARAM in params:
        params[MAP_FETCH_INTERVAL_PARAM] = format_interval(duration / 2)

    overrides = arguments.get("params")
    if isinstance(overrides, dict):
        for key, value in overrides.items():
            if not isinstance(value, str):
                raise ToolArgumentError(
                    f"invalid type for parameter {key}: "
                    f"expected string, got {type(value).__name__}"
                )
            params[key] = value

    return duration, params


def gadget_handler(manager: GadgetManager, info: GadgetDescriptor) -> ToolHandler:
    """Create the handler running one gadget."""

    async def handle(arguments: dict[str, Any]) -> ToolResult:
        try:
            duration, params = resolve_run_arguments(info, arguments)
        except ToolArgumentError as e:
            return ToolResult.error(str(e))

        if duration == 0:
            try:
                instance_id = await manager.run_detached(info.image_name, params)
            except GadgetManagerError as e:
                return ToolResult.error(f"starting gadget {info.image_name}: {e}")
            return ToolResult.ok(f"The gadget has been started with ID {instance_id}.")

        log.debug(GADGET_TOOL_INVOKED, image=info.image_name, params=params, duration=duration)
        try:
            output = await manager.run(info.image_name, params, duration)
        except GadgetManagerError as e:
            return ToolResult.error(f"starting gadget {info.image_name}: {e}")
        return ToolResult.ok(output)

    return handle


def build_gadget_tool(
    environment: str, manager: GadgetManager, info: GadgetDescriptor
) -> ToolDescriptor:
    """Build the tool of one gadget.

    Raises:
        ValueError: If the descriptor metadata cannot be decoded or names no gadget.
    """
    metadata = info.decode_metadata()
    if not metadata.name:
        raise ValueError("gadget metadata has no name")

    return ToolDescriptor(
        name=normalize_tool_name(metadata.name),
        description=render_description(environment, metadata, info),
        handler=gadget_handler(manager, info),
        input_schema=input_schema(info),
        read_only=ReadOnlyHint.READ_ONLY,
    )


def build_gadget_tools(
    environment: str, manager: GadgetManager, infos: dict[str, GadgetDescriptor]
) -> list[ToolDescriptor]:
    """Build tools for every descriptor, skipping those that fail to build."""
    tools = []
    for image, info in sorted(infos.items()):
        try:
            tools.append(build_gadget_tool(environment, manager, info))
        except ValueError as e:
            log.warning(TOOL_BUILD_SKIPPED, image=image, error=str(e))
    return tools
