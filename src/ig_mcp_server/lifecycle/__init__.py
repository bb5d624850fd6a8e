"""Lifecycle tools.

- ig_deploy: deploy, undeploy and upgrade Inspektor Gadget on Kubernetes
- ig_gadgets: list, sample and stop running gadget instances
"""

from ig_mcp_server.lifecycle.cluster import (
    GADGET_POD_SELECTOR,
    AmbiguousDeploymentError,
    ClusterClient,
    ClusterError,
    HelmCliClient,
    HelmClient,
    KubectlClusterClient,
    detect_deployment,
)
from ig_mcp_server.lifecycle.deploy import (
    CHART_URL,
    DEPLOY_TOOL_NAME,
    DeployAction,
    DeploymentLifecycle,
    get_deploy_tool,
)
from ig_mcp_server.lifecycle.instances import (
    INSTANCE_TOOL_NAME,
    GadgetAction,
    InstanceLifecycle,
    get_instance_tool,
)
from ig_mcp_server.lifecycle.versions import BUNDLED_GADGET_VERSION, ChartVersionResolver

__all__ = [
    "GADGET_POD_SELECTOR",
    "AmbiguousDeploymentError",
    "ClusterClient",
    "ClusterError",
    "HelmCliClient",
    "HelmClient",
    "KubectlClusterClient",
    "detect_deployment",
    "CHART_URL",
    "DEPLOY_TOOL_NAME",
    "DeployAction",
    "DeploymentLifecycle",
    "get_deploy_tool",
    "INSTANCE_TOOL_NAME",
    "GadgetAction",
    "InstanceLifecycle",
    "get_instance_tool",
    "BUNDLED_GADGET_VERSION",
    "ChartVersionResolver",
]
