"""The ig_deploy tool: deploy, undeploy and upgrade Inspektor Gadget.

Every call first detects the current deployment state from the gadget pods,
then dispatches on the requested action. A successful deploy asks the tool
registry to rebuild the gadget tools.
"""

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from ig_mcp_server.lifecycle.cluster import (
    ClusterClient,
    ClusterError,
    HelmClient,
    detect_deployment,
)
from ig_mcp_server.lifecycle.versions import ChartVersionResolver
from ig_mcp_server.telemetry import DEPLOYMENT_ACTION, get_logger
from ig_mcp_server.tools.types import ReadOnlyHint, ToolDescriptor, ToolResult, string_argument

log = get_logger(__name__)

DEPLOY_TOOL_NAME = "ig_deploy"
CHART_URL = "oci://ghcr.io/inspektor-gadget/inspektor-gadget/charts/gadget"
RELEASE_NAME = "gadget"
RELEASE_NAMESPACE = "gadget"


class DeployAction(str, Enum):
    """Actions of the ig_deploy tool."""

    DEPLOY = "deploy"
    UNDEPLOY = "undeploy"
    UPGRADE = "upgrade"
    IS_DEPLOYED = "is_deployed"


DEPLOY_ACTIONS = [action.value for action in DeployAction]

_ActionHandler = Callable[[bool, str], Awaitable[ToolResult]]


class DeploymentLifecycle:
    """Handler of the ig_deploy tool.

    Args:
        cluster: Used to detect the deployment.
        helm: Used to install, uninstall and upgrade the chart.
        resolver: Chart version resolver.
        refresher: Called after a successful deploy to rebuild the tool set.
    """

    def __init__(
        self,
        cluster: ClusterClient,
        helm: HelmClient,
        resolver: ChartVersionResolver,
        refresher: Callable[[], None] | None = None,
    ) -> None:
        self.cluster = cluster
        self.helm = helm
        self.resolver = resolver
        self.refresher = refresher
        self._handlers: dict[DeployAction, _ActionHandler] = {
            DeployAction.DEPLOY: self._deploy,
            DeployAction.UNDEPLOY: self._undeploy,
            DeployAction.UPGRADE: self._upgrade,
            DeployAction.IS_DEPLOYED: self._is_deployed,
        }

    async def handle(self, arguments: dict[str, Any]) -> ToolResult:
        name = string_argument(arguments, "action")
        if not name:
            return ToolResult.error(
                "No action specified, must be one of: " + ", ".join(DEPLOY_ACTIONS)
            )
        try:
            action = DeployAction(name)
        except ValueError:
            return ToolResult.error(
                "Invalid action specified, must be one of: " + ", ".join(DEPLOY_ACTIONS)
            )

        try:
            deployed, _ = await detect_deployment(self.cluster)
        except ClusterError as e:
            return ToolResult.error(f"check if Inspektor Gadget is deployed: {e}")

        log.info(DEPLOYMENT_ACTION, action=action.value, deployed=deployed)
        return await self._handlers[action](deployed, string_argument(arguments, "chart_version"))

    async def _chart(self, chart_version: str) -> str:
        return f"{CHART_URL}:{await self.resolver.resolve(chart_version)}"

    async def _deploy(self, deployed: bool, chart_version: str) -> ToolResult:
        if deployed:
            return ToolResult.error("Inspektor Gadget is already deployed")

        chart = await self._chart(chart_version)
        try:
            text = await self.helm.install(chart, RELEASE_NAME, RELEASE_NAMESPACE)
        except ClusterError as e:
            return ToolResult.error(f"failed to deploy Inspektor Gadget: {e}")

        if self.refresher is not None:
            self.refresher()
        return ToolResult.ok(text)

    async def _undeploy(self, deployed: bool, chart_version: str) -> ToolResult:
        if not deployed:
            return ToolResult.error("Inspektor Gadget is not deployed")
        try:
            text = await self.helm.uninstall(RELEASE_NAME, RELEASE_NAMESPACE)
        except ClusterError as e:
            return ToolResult.error(f"failed to undeploy Inspektor Gadget: {e}")
        return ToolResult.ok(text)

    async def _upgrade(self, deployed: bool, chart_version: str) -> ToolResult:
        if not deployed:
            return ToolResult.error("Inspektor Gadget is not deployed, cannot upgrade")

        chart = await self._chart(chart_version)
        try:
            await self.helm.check_release(RELEASE_NAME, RELEASE_NAMESPACE)
        except ClusterError:
            return ToolResult.error(
                f"cannot upgrade Inspektor Gadget: helm release {RELEASE_NAME} in namespace "
                f"{RELEASE_NAMESPACE} does not exist. Did you deploy it manually?"
            )
        try:
            text = await self.helm.upgrade(chart, RELEASE_NAME, RELEASE_NAMESPACE)
        except ClusterError as e:
            return ToolResult.error(f"failed to upgrade Inspektor Gadget: {e}")
        return ToolResult.ok(text)

    async def _is_deployed(self, deployed: bool, chart_version: str) -> ToolResult:
        if deployed:
            return ToolResult.ok("Inspektor Gadget is deployed")
        return ToolResult.ok("Inspektor Gadget is not deployed")


def get_deploy_tool(
    cluster: ClusterClient,
    helm: HelmClient,
    resolver: ChartVersionResolver,
    refresher: Callable[[], None] | None = None,
) -> ToolDescriptor:
    """Build the ig_deploy tool."""
    lifecycle = DeploymentLifecycle(cluster, helm, resolver, refresher)
    return ToolDescriptor(
        name=DEPLOY_TOOL_NAME,
        description="Manage the deployment of Inspektor Gadget on target system",
        handler=lifecycle.handle,
        input_schema={
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "description": (
                        "Lifecycle action to perform: "
                        "deploy(deploy Inspektor Gadget), "
                        "undeploy(undeploy Inspektor Gadget), "
                        "upgrade(upgrade Inspektor Gadget), "
                        "is_deployed(check if Inspektor Gadget is deployed)"
                    ),
                    "enum": DEPLOY_ACTIONS,
                },
                "chart_version": {
                    "type": "string",
                    "description": (
                        "Version of the Inspektor Gadget Helm chart to deploy, "
                        "only set if user explicitly specifies a version"
                    ),
                },
            },
        },
        read_only=ReadOnlyHint.MUTATING,
    )
