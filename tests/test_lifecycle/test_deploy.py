"""Tests for the ig_deploy tool."""

import httpx
import pytest
from fakes import FakeCluster, FakeHelm

from ig_mcp_server.lifecycle.deploy import (
    CHART_URL,
    DEPLOY_TOOL_NAME,
    RELEASE_NAME,
    RELEASE_NAMESPACE,
    DeployAction,
    DeploymentLifecycle,
    get_deploy_tool,
)
from ig_mcp_server.lifecycle.versions import ChartVersionResolver
from ig_mcp_server.tools.types import ReadOnlyHint


@pytest.fixture
def resolver() -> ChartVersionResolver:
    """Resolver whose latest release is 0.45.0."""
    return ChartVersionResolver(
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"tag_name": "v0.45.0"})
        )
    )


class TestDeployTool:
    """Test the tool definition."""

    def test_definition(self, resolver: ChartVersionResolver) -> None:
        """The tool is mutating and enumerates its actions."""
        tool = get_deploy_tool(FakeCluster(), FakeHelm(), resolver)

        assert tool.name == DEPLOY_TOOL_NAME
        assert tool.read_only is ReadOnlyHint.MUTATING
        assert tool.input_schema["properties"]["action"]["enum"] == [
            "deploy",
            "undeploy",
            "upgrade",
            "is_deployed",
        ]
        assert "chart_version" in tool.input_schema["properties"]

    def test_every_action_has_a_handler(self, resolver: ChartVersionResolver) -> None:
        """The dispatch table covers every action."""
        lifecycle = DeploymentLifecycle(FakeCluster(), FakeHelm(), resolver)
        assert set(lifecycle._handlers) == set(DeployAction)


class TestDeploymentLifecycle:
    """Test action handling."""

    @pytest.mark.asyncio
    async def test_missing_action(self, resolver: ChartVersionResolver) -> None:
        """A call without action lists the valid ones."""
        result = await DeploymentLifecycle(FakeCluster(), FakeHelm(), resolver).handle({})
        assert result.text == (
            "No action specified, must be one of: deploy, undeploy, upgrade, is_deployed"
        )
        assert result.is_error is True

    @pytest.mark.asyncio
    async def test_invalid_action(self, resolver: ChartVersionResolver) -> None:
        """Unknown actions are errors."""
        cluster = FakeCluster()
        result = await DeploymentLifecycle(cluster, FakeHelm(), resolver).handle(
            {"action": "reboot"}
        )
        assert result.is_error is True
        assert result.text.startswith("Invalid action specified")
        assert cluster.selectors == []

    @pytest.mark.asyncio
    async def test_is_deployed(self, resolver: ChartVersionResolver) -> None:
        """is_deployed reports the detected state."""
        deployed = DeploymentLifecycle(FakeCluster(["gadget"]), FakeHelm(), resolver)
        absent = DeploymentLifecycle(FakeCluster(), FakeHelm(), resolver)

        assert (await deployed.handle({"action": "is_deployed"})).text == (
            "Inspektor Gadget is deployed"
        )
        assert (await absent.handle({"action": "is_deployed"})).text == (
            "Inspektor Gadget is not deployed"
        )

    @pytest.mark.asyncio
    async def test_deploy_installs_latest_and_refreshes(
        self, resolver: ChartVersionResolver
    ) -> None:
        """Deploy installs the latest chart and requests a refresh."""
        helm = FakeHelm()
        refreshes: list[bool] = []
        lifecycle = DeploymentLifecycle(
            FakeCluster(), helm, resolver, refresher=lambda: refreshes.append(True)
        )

        result = await lifecycle.handle({"action": "deploy"})

        assert result.is_error is False
        assert result.text == "installed"
        assert helm.calls == [
            ("install", f"{CHART_URL}:0.45.0", RELEASE_NAME, RELEASE_NAMESPACE)
        ]
        assert refreshes == [True]

    @pytest.mark.asyncio
    async def test_deploy_explicit_version(self, resolver: ChartVersionResolver) -> None:
        """chart_version overrides the latest release."""
        helm = FakeHelm()
        lifecycle = DeploymentLifecycle(FakeCluster(), helm, resolver)

        await lifecycle.handle({"action": "deploy", "chart_version": "0.40.0"})

        assert helm.calls[0][1] == f"{CHART_URL}:0.40.0"

    @pytest.mark.asyncio
    async def test_deploy_when_deployed(self, resolver: ChartVersionResolver) -> None:
        """Deploying twice is rejected without touching helm."""
        helm = FakeHelm()
        lifecycle = DeploymentLifecycle(FakeCluster(["gadget"]), helm, resolver)

        result = await lifecycle.handle({"action": "deploy"})

        assert result.is_error is True
        assert result.text == "Inspektor Gadget is already deployed"
        assert helm.calls == []

    @pytest.mark.asyncio
    async def test_deploy_failure_does_not_refresh(
        self, resolver: ChartVersionResolver
    ) -> None:
        """A failed install is reported and no refresh is requested."""
        refreshes: list[bool] = []
        lifecycle = DeploymentLifecycle(
            FakeCluster(), FakeHelm(fail=True), resolver, refresher=lambda: refreshes.append(True)
        )

        result = await lifecycle.handle({"action": "deploy"})

        assert result.is_error is True
        assert "install failed" in result.text
        assert refreshes == []

    @pytest.mark.asyncio
    async def test_undeploy(self, resolver: ChartVersionResolver) -> None:
        """Undeploy uninstalls the release, and fails when nothing is deployed."""
        helm = FakeHelm()
        deployed = DeploymentLifecycle(FakeCluster(["gadget"]), helm, resolver)
        absent = DeploymentLifecycle(FakeCluster(), FakeHelm(), resolver)

        assert (await deployed.handle({"action": "undeploy"})).text == "uninstalled"
        assert helm.calls == [("uninstall", RELEASE_NAME, RELEASE_NAMESPACE)]
        assert (await absent.handle({"action": "undeploy"})).is_error is True

    @pytest.mark.asyncio
    async def test_upgrade(self, resolver: ChartVersionResolver) -> None:
        """Upgrade checks the release before upgrading it."""
        helm = FakeHelm()
        lifecycle = DeploymentLifecycle(FakeCluster(["gadget"]), helm, resolver)

        result = await lifecycle.handle({"action": "upgrade"})

        assert result.text == "upgraded"
        assert [call[0] for call in helm.calls] == ["check_release", "upgrade"]

    @pytest.mark.asyncio
    async def test_upgrade_without_release(self, resolver: ChartVersionResolver) -> None:
        """Upgrading a deployment not made with helm is an error."""
        helm = FakeHelm(has_release=False)
        lifecycle = DeploymentLifecycle(FakeCluster(["gadget"]), helm, resolver)

        result = await lifecycle.handle({"action": "upgrade"})

        assert result.is_error is True
        assert "Did you deploy it manually?" in result.text
        assert [call[0] for call in helm.calls] == ["check_release"]

    @pytest.mark.asyncio
    async def test_ambiguous_deployment(self, resolver: ChartVersionResolver) -> None:
        """Pods in several namespaces fail every action."""
        helm = FakeHelm()
        lifecycle = DeploymentLifecycle(FakeCluster(["a", "b"]), helm, resolver)

        result = await lifecycle.handle({"action": "deploy"})

        assert result.is_error is True
        assert result.text.startswith("check if Inspektor Gadget is deployed: multiple namespaces")
        assert helm.calls == []
