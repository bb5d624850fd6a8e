"""Tests for the CLI-backed gadget runtime."""

from collections.abc import Callable
from unittest.mock import AsyncMock, patch

import pytest

from ig_mcp_server.gadgets.runtime import (
    CliGadgetRuntime,
    GadgetRuntimeError,
    RunRequest,
    _param_flags,
)
from ig_mcp_server.kubeconfig import KubeOptions
from ig_mcp_server.process import CommandError, CommandResult


def _ok(stdout: bytes = b"") -> CommandResult:
    return CommandResult(returncode=0, stdout=stdout, stderr=b"")


class TestParamFlags:
    """Test parameter flag translation."""

    def test_prefix_is_dropped_and_empty_values_skipped(self) -> None:
        """Flags use the bare key and skip empty values."""
        flags = _param_flags(
            {
                "operator.oci.ebpf.map-fetch-interval": "5s",
                "operator.KubeManager.namespace": "",
                "name": "x",
            }
        )
        assert flags == ["--name=x", "--map-fetch-interval=5s"]


class TestConstruction:
    """Test base command selection."""

    def test_kubernetes_uses_kubectl_plugin(self) -> None:
        """Kubernetes forwards the kubeconfig flags."""
        runtime = CliGadgetRuntime("kubernetes", kube=KubeOptions(context="dev"))
        assert runtime._base_cmd == ["kubectl", "gadget", "--context=dev"]

    def test_linux_uses_gadgetctl(self) -> None:
        """Linux talks to the daemon at the remote address."""
        runtime = CliGadgetRuntime("linux", remote_address="tcp://10.0.0.1:8080")
        assert runtime._base_cmd == ["gadgetctl", "--remote-address=tcp://10.0.0.1:8080"]

    def test_linux_without_address_fails(self) -> None:
        """Linux requires a remote address."""
        with pytest.raises(GadgetRuntimeError):
            CliGadgetRuntime("linux")


class TestRunGadget:
    """Test run, attach and detach commands."""

    @pytest.mark.asyncio
    async def test_detached_run(self) -> None:
        """Detached runs pass ID and tags and do not stream."""
        runtime = CliGadgetRuntime("kubernetes")
        request = RunRequest(
            target="trace_exec:latest",
            params={"operator.oci.ebpf.paths": "true"},
            detach=True,
            instance_id="abc",
            tags=("createdBy=ig-mcp-server",),
        )
        with patch(
            "ig_mcp_server.gadgets.runtime.run_command", new=AsyncMock(return_value=_ok())
        ) as run_command:
            await runtime.run_gadget(request, lambda record: None)

        cmd = run_command.call_args.args[0]
        assert cmd == [
            "kubectl",
            "gadget",
            "run",
            "trace_exec:latest",
            "--detach",
            "--id=abc",
            "--tags=createdBy=ig-mcp-server",
            "--paths=true",
        ]

    @pytest.mark.asyncio
    async def test_foreground_run_streams_json_records(self) -> None:
        """Every JSON line is delivered as a record; other lines are ignored."""
        runtime = CliGadgetRuntime("kubernetes")
        records: list[dict] = []

        async def fake_stream(
            cmd: list[str], on_line: Callable[[bytes], None], timeout: float | None = None
        ) -> CommandResult:
            on_line(b'{"name":"example.com"}')
            on_line(b"not json")
            on_line(b"[1,2]")
            return CommandResult(returncode=None, stdout=b"", stderr=b"", timed_out=True)

        with patch("ig_mcp_server.gadgets.runtime.stream_command", new=fake_stream):
            await runtime.run_gadget(
                RunRequest(target="trace_dns:latest", timeout=2), records.append
            )

        assert records == [{"name": "example.com"}, {"value": [1, 2]}]

    @pytest.mark.asyncio
    async def test_attach_command(self) -> None:
        """Attach targets the instance ID."""
        runtime = CliGadgetRuntime("linux", remote_address="unix:///run/gadget.socket")
        stream = AsyncMock(return_value=_ok())
        with patch("ig_mcp_server.gadgets.runtime.stream_command", new=stream):
            await runtime.run_gadget(RunRequest(target="abc", attach=True, timeout=1), print)

        assert stream.call_args.args[0] == [
            "gadgetctl",
            "--remote-address=unix:///run/gadget.socket",
            "attach",
            "abc",
            "--output=json",
        ]
        assert stream.call_args.kwargs["timeout"] == 1

    @pytest.mark.asyncio
    async def test_failed_run_raises(self) -> None:
        """A non-zero exit before the timeout is an error."""
        runtime = CliGadgetRuntime("kubernetes")
        failed = CommandResult(returncode=1, stdout=b"", stderr=b"image not found")
        with patch(
            "ig_mcp_server.gadgets.runtime.stream_command", new=AsyncMock(return_value=failed)
        ):
            with pytest.raises(GadgetRuntimeError, match="image not found"):
                await runtime.run_gadget(RunRequest(target="nope:latest"), print)


class TestQueries:
    """Test info, list, version and delete."""

    @pytest.mark.asyncio
    async def test_get_gadget_info(self) -> None:
        """The inspect output is parsed into a descriptor."""
        runtime = CliGadgetRuntime("kubernetes")
        stdout = b'{"params":[{"key":"k","prefix":"p.","defaultValue":"d"}],"metadata":"name: x"}'
        with patch(
            "ig_mcp_server.gadgets.runtime.run_command", new=AsyncMock(return_value=_ok(stdout))
        ):
            info = await runtime.get_gadget_info("trace_dns:latest")

        assert info.image_name == "trace_dns:latest"
        assert info.default_params() == {"p.k": "d"}

    @pytest.mark.asyncio
    async def test_get_gadget_info_bad_output(self) -> None:
        """Undecodable output is a runtime error."""
        runtime = CliGadgetRuntime("kubernetes")
        with patch(
            "ig_mcp_server.gadgets.runtime.run_command", new=AsyncMock(return_value=_ok(b"{"))
        ):
            with pytest.raises(GadgetRuntimeError, match="decoding gadget info"):
                await runtime.get_gadget_info("trace_dns:latest")

    @pytest.mark.asyncio
    async def test_list_instances(self) -> None:
        """Instances are read from the JSON list."""
        runtime = CliGadgetRuntime("kubernetes")
        stdout = (
            b'[{"id":"abc","tags":["createdBy=ig-mcp-server"],"timeCreated":1700000000,'
            b'"gadgetConfig":{"imageName":"trace_exec:latest","paramValues":{"a":"1"}}}]'
        )
        with patch(
            "ig_mcp_server.gadgets.runtime.run_command", new=AsyncMock(return_value=_ok(stdout))
        ):
            instances = await runtime.list_instances()

        assert len(instances) == 1
        assert instances[0].id == "abc"
        assert instances[0].image_name == "trace_exec:latest"
        assert instances[0].tags == ("createdBy=ig-mcp-server",)
        assert instances[0].param_values == {"a": "1"}
        assert instances[0].time_created == 1700000000

    @pytest.mark.asyncio
    async def test_get_version(self) -> None:
        """The server version line is used."""
        runtime = CliGadgetRuntime("kubernetes")
        stdout = b"Client version: v0.44.1\nServer version: v0.44.0\n"
        with patch(
            "ig_mcp_server.gadgets.runtime.run_command", new=AsyncMock(return_value=_ok(stdout))
        ):
            assert await runtime.get_version() == "v0.44.0"

    @pytest.mark.asyncio
    async def test_remove_instance_error(self) -> None:
        """Command failures become runtime errors."""
        runtime = CliGadgetRuntime("kubernetes")
        error = CommandError(["kubectl"], "instance abc not found", returncode=1)
        with patch(
            "ig_mcp_server.gadgets.runtime.run_command", new=AsyncMock(side_effect=error)
        ):
            with pytest.raises(GadgetRuntimeError, match="instance abc not found"):
                await runtime.remove_instance("abc")
