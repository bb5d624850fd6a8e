"""Placeholder gadget tools shown while Inspektor Gadget is not deployed.

One tool per discovered gadget, named after the image repository, whose
handler only tells the caller to deploy first.
"""

import re
from typing import Any

from ig_mcp_server.discovery.base import Gadget
from ig_mcp_server.telemetry import TOOL_BUILD_SKIPPED, get_logger
from ig_mcp_server.tools.builder import TOOL_NAME_PREFIX
from ig_mcp_server.tools.types import ReadOnlyHint, ToolDescriptor, ToolResult

log = get_logger(__name__)

NOT_DEPLOYED_MESSAGE = (
    "Inspektor Gadget is not deployed, please deploy it using the ig_deploy tool first "
    "or if you just deployed it, please restart the ig-mcp-server or MCP gateway "
    "to refresh the tool list"
)

# Path component grammar of OCI repository names
_PATH_COMPONENT = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_DOMAIN = re.compile(r"^(?:localhost|[\w-]+(?:\.[\w-]+)+)(?::\d+)?$|^[\w.-]+:\d+$")
_TAG = re.compile(r"^[\w][\w.-]{0,127}$")


def extract_name(image: str) -> str:
    """Last path component of an image repository, tag and digest stripped.

    Example:
        ``ghcr.io/inspektor-gadget/gadget/trace_dns:latest`` -> ``trace_dns``

    Raises:
        ValueError: If the reference is not a valid image reference.
    """
    reference = image.strip()
    if not reference:
        raise ValueError("empty image reference")

    reference, _, digest = reference.partition("@")
    if "@" in image and not digest:
        raise ValueError(f"invalid digest in image reference {image}")

    repository = reference
    slash = reference.rfind("/")
    colon = reference.rfind(":")
    if colon > slash:
        repository, tag = reference[:colon], reference[colon + 1 :]
        if not _TAG.match(tag):
            raise ValueError(f"invalid tag in image reference {image}")

    components = repository.split("/")
    if len(components) > 1 and _DOMAIN.match(components[0]):
        components = components[1:]
    for component in components:
        if not _PATH_COMPONENT.match(component):
            raise ValueError(f"invalid image reference {image}")

    return components[-1]


async def _not_deployed(arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.error(NOT_DEPLOYED_MESSAGE)


def build_ephemeral_tools(gadgets: list[Gadget]) -> list[ToolDescriptor]:
    """Build one placeholder tool per gadget, skipping unparsable images."""
    tools = []
    for gadget in gadgets:
        try:
            name = extract_name(gadget.image)
        except ValueError as e:
            log.warning(TOOL_BUILD_SKIPPED, image=gadget.image, error=str(e))
            continue
        tools.append(
            ToolDescriptor(
                name=TOOL_NAME_PREFIX + name.replace(" ", "_"),
                description=gadget.description,
                handler=_not_deployed,
                read_only=ReadOnlyHint.UNSPECIFIED,
            )
        )
    return tools
