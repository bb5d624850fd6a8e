"""Truncation policy for captured gadget output.

Output handed back to a tool caller is capped at MAX_RESULT_LEN bytes. How
the cap is applied depends on the kind of execution:

- TruncationMode.FULL, used for completed bounded runs, keeps the head of the
  buffer and marks the cut with an ellipsis.
- TruncationMode.LATEST, used when sampling a live background instance, keeps
  the tail so the most recent records survive.
"""

from dataclasses import dataclass
from enum import Enum

MAX_RESULT_LEN = 64 * 1024
ELLIPSIS = "…"


class TruncationMode(str, Enum):
    """Which end of an oversized buffer to keep."""

    FULL = "full"
    LATEST = "latest"


@dataclass(frozen=True)
class ExecutionResult:
    """Captured output after the truncation policy was applied.

    Attributes:
        output: Retained bytes (never longer than the limit).
        truncated: Whether bytes were dropped.
        mode: Truncation mode that was applied.
    """

    output: bytes
    truncated: bool
    mode: TruncationMode

    def render(self) -> str:
        """Wrap the output in result markers for the tool caller."""
        text = self.output.decode("utf-8", errors="replace")
        if not self.truncated:
            return f"\n<results>{text}</results>\n"
        if self.mode is TruncationMode.FULL:
            text += ELLIPSIS
        return f"\n<isTruncated>true</isTruncated>\n<results>{text}</results>\n"


def govern(buffer: bytes, mode: TruncationMode, limit: int = MAX_RESULT_LEN) -> ExecutionResult:
    """Apply the truncation policy to a captured buffer.

    Args:
        buffer: Accumulated line-delimited output.
        mode: FULL keeps the first ``limit`` bytes, LATEST keeps the last ``limit``.
        limit: Byte limit.

    Returns:
        ExecutionResult with the retained bytes and truncation flag.
    """
    if len(buffer) <= limit:
        return ExecutionResult(output=bytes(buffer), truncated=False, mode=mode)
    if mode is TruncationMode.LATEST:
        return ExecutionResult(output=bytes(buffer[-limit:]), truncated=True, mode=mode)
    return ExecutionResult(output=bytes(buffer[:limit]), truncated=True, mode=mode)
