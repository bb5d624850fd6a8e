"""Tests for the subprocess helpers."""

import sys

import pytest

from ig_mcp_server.process import CommandError, CommandResult, _redact, run_command, stream_command


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestRunCommand:
    """Test run_command."""

    @pytest.mark.asyncio
    async def test_collects_output(self) -> None:
        """stdout and stderr are captured."""
        result = await run_command(
            _python("import sys; print('out'); print('err', file=sys.stderr)")
        )
        assert result.ok
        assert result.stdout.strip() == b"out"
        assert result.stderr.strip() == b"err"

    @pytest.mark.asyncio
    async def test_failure_raises_with_stderr(self) -> None:
        """Non-zero exits raise with the stderr text."""
        with pytest.raises(CommandError, match="broken") as exc:
            await run_command(_python("import sys; sys.exit('broken')"))
        assert exc.value.returncode == 1

    @pytest.mark.asyncio
    async def test_unchecked_failure(self) -> None:
        """check=False returns the failed result."""
        result = await run_command(_python("raise SystemExit(3)"), check=False)
        assert result.returncode == 3
        assert not result.ok

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        """Commands exceeding the timeout are terminated."""
        with pytest.raises(CommandError, match="timed out"):
            await run_command(_python("import time; time.sleep(30)"), timeout=0.5)

    @pytest.mark.asyncio
    async def test_missing_binary(self) -> None:
        """A missing executable raises CommandError."""
        with pytest.raises(CommandError, match="starting"):
            await run_command(["definitely-not-an-installed-binary-xyz"])


class TestStreamCommand:
    """Test stream_command."""

    @pytest.mark.asyncio
    async def test_lines_delivered(self) -> None:
        """Non-empty lines are delivered without newlines."""
        lines: list[bytes] = []
        result = await stream_command(_python("print('a'); print(); print('b')"), lines.append)
        assert lines == [b"a", b"b"]
        assert result.timed_out is False
        assert result.returncode == 0

    @pytest.mark.asyncio
    async def test_timeout_is_not_an_error(self) -> None:
        """Reaching the collection window terminates the process."""
        lines: list[bytes] = []
        code = "import time; print('first', flush=True); time.sleep(30)"

        result = await stream_command(_python(code), lines.append, timeout=1.0)

        assert result.timed_out is True
        assert lines == [b"first"]


class TestHelpers:
    """Test result and redaction helpers."""

    def test_error_text_prefers_stderr(self) -> None:
        """stderr wins, then stdout, then the exit status."""
        assert CommandResult(1, b"out", b"err").error_text() == "err"
        assert CommandResult(1, b"out", b"").error_text() == "out"
        assert CommandResult(2, b"", b"").error_text() == "exit status 2"

    def test_redact_tokens(self) -> None:
        """Bearer tokens are hidden in both flag forms."""
        cmd = ["kubectl", "--token=secret", "--kube-token", "secret2", "get"]
        assert _redact(cmd) == ["kubectl", "--token=***", "--kube-token", "***", "get"]
