"""Async subprocess helpers for the external CLIs (kubectl gadget, helm).

Two call shapes are supported: ``run_command`` collects the whole output of
a short command, ``stream_command`` hands stdout to a callback line by line
and closes the collection window by terminating the process.
"""

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ig_mcp_server.telemetry import GADGET_RUNTIME_COMMAND, get_logger

log = get_logger(__name__)

# JSON records from gadgets can be long; the asyncio default is 64 KiB
_STREAM_LIMIT = 16 * 1024 * 1024
_TERMINATE_GRACE_SECONDS = 5.0


class CommandError(Exception):
    """Raised when an external command cannot be started or fails."""

    def __init__(self, cmd: Sequence[str], message: str, returncode: int | None = None) -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        super().__init__(message)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an external command."""

    returncode: int | None
    stdout: bytes
    stderr: bytes
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def error_text(self) -> str:
        """Best human-readable failure reason from the command output."""
        text = self.stderr.decode("utf-8", errors="replace").strip()
        if not text:
            text = self.stdout.decode("utf-8", errors="replace").strip()
        return text or f"exit status {self.returncode}"


async def _spawn(cmd: Sequence[str]) -> asyncio.subprocess.Process:
    log.debug(GADGET_RUNTIME_COMMAND, cmd=_redact(cmd))
    try:
        return await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            limit=_STREAM_LIMIT,
        )
    except OSError as e:
        raise CommandError(cmd, f"starting {cmd[0]}: {e}") from e


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        proc.terminate()
        await asyncio.wait_for(proc.wait(), timeout=_TERMINATE_GRACE_SECONDS)
    except ProcessLookupError:
        pass
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()


async def run_command(
    cmd: Sequence[str], timeout: float | None = None, check: bool = True
) -> CommandResult:
    """Run a command to completion and collect its output.

    Args:
        cmd: Command and arguments.
        timeout: Seconds to wait before killing the command.
        check: Raise CommandError on a non-zero exit status.

    Returns:
        CommandResult with the captured output.

    Raises:
        CommandError: If the command cannot be started, times out, or (with
            ``check``) exits non-zero.
    """
    proc = await _spawn(cmd)
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _terminate(proc)
        raise CommandError(cmd, f"{cmd[0]} timed out after {timeout}s") from None
    except asyncio.CancelledError:
        await _terminate(proc)
        raise

    result = CommandResult(returncode=proc.returncode, stdout=stdout, stderr=stderr)
    if check and not result.ok:
        raise CommandError(cmd, result.error_text(), returncode=proc.returncode)
    return result


async def stream_command(
    cmd: Sequence[str],
    on_line: Callable[[bytes], None],
    timeout: float | None = None,
) -> CommandResult:
    """Run a command and deliver each non-empty stdout line to ``on_line``.

    Reaching ``timeout`` is not an error: the process is terminated and the
    result is flagged ``timed_out``. Cancelling the caller terminates the
    process before the cancellation propagates.

    Args:
        cmd: Command and arguments.
        on_line: Callback invoked with each line (without the newline).
        timeout: Collection window in seconds, None for no limit.

    Returns:
        CommandResult (stdout is not retained).

    Raises:
        CommandError: If the command cannot be started.
    """
    proc = await _spawn(cmd)
    assert proc.stdout is not None and proc.stderr is not None
    stderr_task = asyncio.ensure_future(proc.stderr.read())

    async def pump() -> None:
        assert proc.stdout is not None
        async for raw in proc.stdout:
            line = raw.rstrip(b"\r\n")
            if line:
                on_line(line)
        await proc.wait()

    timed_out = False
    try:
        await asyncio.wait_for(pump(), timeout=timeout)
    except asyncio.TimeoutError:
        timed_out = True
        await _terminate(proc)
    except BaseException:
        await _terminate(proc)
        stderr_task.cancel()
        raise

    stderr = await stderr_task
    return CommandResult(
        returncode=proc.returncode, stdout=b"", stderr=stderr, timed_out=timed_out
    )


def _redact(cmd: Sequence[str]) -> list[str]:
    """Hide bearer tokens from logged command lines."""
    redacted = []
    hide_next = False
    for arg in cmd:
        if hide_next:
            redacted.append("***")
            hide_next = False
        elif arg in ("--token", "--kube-token"):
            redacted.append(arg)
            hide_next = True
        elif arg.startswith(("--token=", "--kube-token=")):
            redacted.append(arg.split("=", 1)[0] + "=***")
        else:
            redacted.append(arg)
    return redacted
