"""Tests for the gadget tool builder."""

import pytest
from fakes import FakeRuntime, make_descriptor

from ig_mcp_server.gadgets.manager import GadgetManager
from ig_mcp_server.tools.builder import (
    DEFAULT_DURATION_SECONDS,
    MAP_FETCH_INTERVAL_PARAM,
    build_gadget_tool,
    build_gadget_tools,
    normalize_tool_name,
    resolve_run_arguments,
)
from ig_mcp_server.tools.types import ReadOnlyHint, ToolArgumentError


class TestNormalizeToolName:
    """Test tool naming."""

    def test_spaces_become_underscores(self) -> None:
        """Metadata names map to gadget_ prefixed names."""
        assert normalize_tool_name("trace dns") == "gadget_trace_dns"


class TestBuildGadgetTool:
    """Test tool construction."""

    def test_tool_shape(self, manager: GadgetManager) -> None:
        """Name, hint and schema follow the descriptor."""
        tool = build_gadget_tool("kubernetes", manager, make_descriptor())

        assert tool.name == "gadget_trace_dns"
        assert tool.read_only is ReadOnlyHint.READ_ONLY
        schema = tool.input_schema
        assert schema["required"] == ["params"]
        assert schema["properties"]["duration"]["type"] == "number"
        params = schema["properties"]["params"]
        assert params["type"] == "object"
        assert params["properties"][MAP_FETCH_INTERVAL_PARAM] == {
            "type": "string",
            "description": "Interval of map fetches",
        }
        assert "operator.KubeManager.namespace" in params["properties"]

    def test_description_lists_first_data_source_fields(self, manager: GadgetManager) -> None:
        """The description carries metadata, environment and fields."""
        tool = build_gadget_tool("linux", manager, make_descriptor())

        assert tool.description.startswith("Trace DNS requests and responses")
        assert "gadget_trace_dns" in tool.description
        assert "linux environment" in tool.description
        assert "- name: Domain name" in tool.description
        assert "- qr: Query or response (possible values: Q, R)" in tool.description

    def test_invalid_metadata_is_rejected(self, manager: GadgetManager) -> None:
        """Undecodable metadata fails the build."""
        with pytest.raises(ValueError):
            build_gadget_tool("kubernetes", manager, make_descriptor(metadata="[unclosed"))

    def test_build_many_skips_broken(self, manager: GadgetManager) -> None:
        """Broken descriptors are skipped."""
        infos = {
            "good:latest": make_descriptor("good:latest"),
            "bad:latest": make_descriptor("bad:latest", metadata="- a\n"),
            "nameless:latest": make_descriptor("nameless:latest", metadata="description: x\n"),
        }
        tools = build_gadget_tools("kubernetes", manager, infos)
        assert [t.name for t in tools] == ["gadget_trace_dns"]


class TestResolveRunArguments:
    """Test argument handling."""

    def test_defaults(self) -> None:
        """No arguments run in the foreground for the default duration."""
        duration, params = resolve_run_arguments(make_descriptor(), {})
        assert duration == DEFAULT_DURATION_SECONDS
        assert params[MAP_FETCH_INTERVAL_PARAM] == "1s"

    def test_interval_is_half_the_duration(self) -> None:
        """Foreground runs halve the duration into the fetch interval."""
        duration, params = resolve_run_arguments(make_descriptor(), {"duration": 30})
        assert duration == 30
        assert params[MAP_FETCH_INTERVAL_PARAM] == "15s"

    def test_zero_duration_keeps_interval(self) -> None:
        """Background runs keep the default interval."""
        duration, params = resolve_run_arguments(make_descriptor(), {"duration": 0})
        assert duration == 0
        assert params[MAP_FETCH_INTERVAL_PARAM] == "1s"

    def test_interval_is_not_added(self) -> None:
        """Gadgets without the interval parameter do not get one."""
        _, params = resolve_run_arguments(
            make_descriptor(with_interval=False), {"duration": 20}
        )
        assert MAP_FETCH_INTERVAL_PARAM not in params

    def test_params_override_defaults(self) -> None:
        """Caller params override defaults, including the interval."""
        _, params = resolve_run_arguments(
            make_descriptor(),
            {
                "duration": 10,
                "params": {
                    "operator.KubeManager.namespace": "default",
                    MAP_FETCH_INTERVAL_PARAM: "2s",
                },
            },
        )
        assert params["operator.KubeManager.namespace"] == "default"
        assert params[MAP_FETCH_INTERVAL_PARAM] == "2s"

    def test_non_string_param_is_rejected(self) -> None:
        """A non-string value names the offending key."""
        with pytest.raises(
            ToolArgumentError, match="invalid type for parameter pid: expected string"
        ):
            resolve_run_arguments(make_descriptor(), {"params": {"pid": 42}})

    def test_negative_duration_is_rejected(self) -> None:
        """Durations below zero are invalid rather than run detached or forever."""
        with pytest.raises(ToolArgumentError, match="must not be negative"):
            resolve_run_arguments(make_descriptor(), {"duration": -3, "params": {}})


class TestGadgetHandler:
    """Test tool invocation."""

    @pytest.mark.asyncio
    async def test_foreground_run(self, manager: GadgetManager, runtime: FakeRuntime) -> None:
        """A duration runs the gadget in the foreground for that long."""
        runtime.records = [{"name": "example.com"}]
        tool = build_gadget_tool("kubernetes", manager, make_descriptor())

        result = await tool.handler({"params": {}, "duration": 4})

        assert result.is_error is False
        assert "example.com" in result.text
        request = runtime.requests[0]
        assert request.timeout == 4
        assert request.params[MAP_FETCH_INTERVAL_PARAM] == "2s"

    @pytest.mark.asyncio
    async def test_zero_duration_runs_detached(
        self, manager: GadgetManager, runtime: FakeRuntime
    ) -> None:
        """Duration 0 starts the gadget in the background."""
        tool = build_gadget_tool("kubernetes", manager, make_descriptor())

        result = await tool.handler({"params": {}, "duration": 0})

        assert result.is_error is False
        assert result.text.startswith("The gadget has been started with ID ")
        assert runtime.requests[0].detach is True

    @pytest.mark.asyncio
    async def test_type_error_is_error_result(
        self, manager: GadgetManager, runtime: FakeRuntime
    ) -> None:
        """Validation errors are returned, not raised, and nothing runs."""
        tool = build_gadget_tool("kubernetes", manager, make_descriptor())

        result = await tool.handler({"params": {"pid": True}})

        assert result.is_error is True
        assert "pid" in result.text
        assert runtime.requests == []

    @pytest.mark.asyncio
    async def test_negative_duration_is_error_result(
        self, manager: GadgetManager, runtime: FakeRuntime
    ) -> None:
        """A negative duration is reported to the caller and nothing runs."""
        tool = build_gadget_tool("kubernetes", manager, make_descriptor())

        result = await tool.handler({"params": {}, "duration": -1})

        assert result.is_error is True
        assert "invalid duration -1" in result.text
        assert runtime.requests == []

    @pytest.mark.asyncio
    async def test_backend_error_is_error_result(
        self, manager: GadgetManager, runtime: FakeRuntime
    ) -> None:
        """Backend failures become error results."""
        runtime.run_error = "boom"
        tool = build_gadget_tool("kubernetes", manager, make_descriptor())

        result = await tool.handler({"params": {}, "duration": 1})

        assert result.is_error is True
        assert "starting gadget ghcr.io/inspektor-gadget/gadget/trace_dns:latest" in result.text
        assert "boom" in result.text
