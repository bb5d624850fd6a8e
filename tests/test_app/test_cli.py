"""Tests for the command-line entry point."""

from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from ig_mcp_server import __version__
from ig_mcp_server.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Run outside the repo and keep the global logging setup untouched."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("ig_mcp_server.cli.configure_logging", lambda **kwargs: None)
    monkeypatch.delenv("IG_MCP_TRANSPORT", raising=False)
    monkeypatch.delenv("IG_MCP_ENVIRONMENT", raising=False)


def test_version() -> None:
    """--version prints the version and exits."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"ig-mcp-server {__version__}" in result.output


def test_invalid_configuration_exits_1() -> None:
    """Invalid settings are fatal."""
    with patch("ig_mcp_server.cli.run", AsyncMock(return_value=0)) as run:
        result = runner.invoke(app, ["--transport", "websocket"])
    assert result.exit_code == 1
    run.assert_not_called()


def test_linux_without_address_exits_1() -> None:
    """The linux environment requires a daemon address."""
    with patch("ig_mcp_server.cli.run", AsyncMock(return_value=0)) as run:
        result = runner.invoke(app, ["--environment", "linux"])
    assert result.exit_code == 1
    run.assert_not_called()


def test_flags_reach_the_configuration() -> None:
    """Flags are applied and the exit code of the run is returned."""
    with patch("ig_mcp_server.cli.run", AsyncMock(return_value=0)) as run:
        result = runner.invoke(
            app,
            [
                "--read-only",
                "--transport",
                "sse",
                "--transport-port",
                "9000",
                "--gadget-images",
                "trace_dns:latest,trace_open:latest",
                "--context",
                "prod",
            ],
        )

    assert result.exit_code == 0
    config = run.call_args.args[0]
    assert config.read_only is True
    assert config.transport == "sse"
    assert config.transport_port == 9000
    assert config.gadget_images == ["trace_dns:latest", "trace_open:latest"]
    assert config.kube_context == "prod"


def test_run_failure_exit_code() -> None:
    """A failed run exits with its code."""
    with patch("ig_mcp_server.cli.run", AsyncMock(return_value=1)):
        result = runner.invoke(app, [])
    assert result.exit_code == 1
