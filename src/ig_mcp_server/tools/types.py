"""Type definitions for exposed tools.

A ToolDescriptor is what the protocol layer needs to list and call a tool:
name, description, JSON input schema, read-only hint and an async handler.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ReadOnlyHint(str, Enum):
    """Whether a tool mutates its target.

    UNSPECIFIED tools are treated as visible in read-only mode.
    """

    READ_ONLY = "read_only"
    MUTATING = "mutating"
    UNSPECIFIED = "unspecified"

    def as_annotation(self) -> bool | None:
        """Value of the protocol's ``readOnlyHint`` annotation."""
        if self is ReadOnlyHint.READ_ONLY:
            return True
        if self is ReadOnlyHint.MUTATING:
            return False
        return None


@dataclass(frozen=True)
class ToolResult:
    """Result of a tool invocation as seen by the caller."""

    text: str
    is_error: bool = False

    @classmethod
    def ok(cls, text: str) -> "ToolResult":
        return cls(text=text)

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(text=text, is_error=True)


ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolResult]]


class ToolArgumentError(Exception):
    """Raised by handlers when call arguments fail validation."""

    pass


@dataclass(frozen=True)
class ToolDescriptor:
    """An exposed tool.

    Attributes:
        name: Unique tool name; a later registration with the same name wins.
        description: Description shown to the caller.
        input_schema: JSON schema of the arguments.
        read_only: Read-only hint, used for filtering in read-only mode.
        handler: Coroutine function receiving the arguments mapping.
    """

    name: str
    description: str
    handler: ToolHandler = field(compare=False)
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    read_only: ReadOnlyHint = ReadOnlyHint.UNSPECIFIED


def string_argument(arguments: dict[str, Any] | None, key: str, default: str = "") -> str:
    """Read a string argument, falling back to ``default`` for absent or non-string values."""
    if not arguments:
        return default
    value = arguments.get(key)
    return value if isinstance(value, str) else default
