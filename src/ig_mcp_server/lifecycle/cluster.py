"""Cluster access for the deployment lifecycle.

ClusterClient lists the namespaces of pods matching a label selector and
HelmClient manages the Inspektor Gadget chart release. Both have CLI-backed
implementations (``kubectl`` and ``helm`` run as subprocesses) and can be
replaced by fakes.
"""

from abc import ABC, abstractmethod

import orjson

from ig_mcp_server.kubeconfig import KubeOptions
from ig_mcp_server.process import CommandError, run_command
from ig_mcp_server.telemetry import DEPLOYMENT_STATE_CHECKED, get_logger

log = get_logger(__name__)

GADGET_POD_SELECTOR = "k8s-app=gadget"

_KUBECTL_TIMEOUT_SECONDS = 30.0
# install/upgrade wait for the daemonset to become ready
_HELM_TIMEOUT_SECONDS = 600.0


class ClusterError(Exception):
    """Raised when the cluster cannot be queried or changed."""

    pass


class AmbiguousDeploymentError(ClusterError):
    """Raised when gadget pods run in more than one namespace."""

    def __init__(self, namespaces: list[str]) -> None:
        self.namespaces = namespaces
        super().__init__(
            f"multiple namespaces found for Inspektor Gadget pods: {', '.join(namespaces)}"
        )


class ClusterClient(ABC):
    """Read access to the cluster."""

    @abstractmethod
    async def list_pod_namespaces(self, selector: str) -> list[str]:
        """Namespace of every pod matching ``selector``, one entry per pod."""


class HelmClient(ABC):
    """Chart release management."""

    @abstractmethod
    async def install(self, chart: str, release: str, namespace: str) -> str:
        """Install a chart, creating the namespace. Returns a status text."""

    @abstractmethod
    async def uninstall(self, release: str, namespace: str) -> str:
        """Uninstall a release. Returns a status text."""

    @abstractmethod
    async def upgrade(self, chart: str, release: str, namespace: str) -> str:
        """Upgrade an existing release. Returns a status text."""

    @abstractmethod
    async def check_release(self, release: str, namespace: str) -> None:
        """Raise ClusterError if the release does not exist."""


async def detect_deployment(
    cluster: ClusterClient, selector: str = GADGET_POD_SELECTOR
) -> tuple[bool, str]:
    """Find out whether Inspektor Gadget runs in the cluster.

    Returns:
        Tuple of (deployed, namespace); namespace is empty when not deployed.

    Raises:
        AmbiguousDeploymentError: If matching pods span several namespaces.
        ClusterError: If the pods cannot be listed.
    """
    namespaces = list(dict.fromkeys(await cluster.list_pod_namespaces(selector)))
    if not namespaces:
        log.debug(DEPLOYMENT_STATE_CHECKED, deployed=False)
        return False, ""
    if len(namespaces) > 1:
        log.debug(DEPLOYMENT_STATE_CHECKED, namespaces=namespaces)
        raise AmbiguousDeploymentError(namespaces)

    log.debug(DEPLOYMENT_STATE_CHECKED, deployed=True, namespace=namespaces[0])
    return True, namespaces[0]


class KubectlClusterClient(ClusterClient):
    """ClusterClient running ``kubectl get pods``."""

    def __init__(self, kube: KubeOptions | None = None) -> None:
        self.kube = kube or KubeOptions()

    async def list_pod_namespaces(self, selector: str) -> list[str]:
        cmd = [
            "kubectl",
            *self.kube.kubectl_args(),
            "get",
            "pods",
            "--all-namespaces",
            f"--selector={selector}",
            "--output=json",
        ]
        try:
            result = await run_command(cmd, timeout=_KUBECTL_TIMEOUT_SECONDS)
            document = orjson.loads(result.stdout)
        except CommandError as e:
            raise ClusterError(f"getting pods: {e}") from e
        except orjson.JSONDecodeError as e:
            raise ClusterError(f"decoding pod list: {e}") from e

        return [
            (item.get("metadata") or {}).get("namespace", "")
            for item in document.get("items") or []
        ]


class HelmCliClient(HelmClient):
    """HelmClient running the ``helm`` binary."""

    def __init__(
        self, kube: KubeOptions | None = None, timeout: float = _HELM_TIMEOUT_SECONDS
    ) -> None:
        self.kube = kube or KubeOptions()
        self.timeout = timeout

    async def install(self, chart: str, release: str, namespace: str) -> str:
        await self._helm(
            "install", release, chart, f"--namespace={namespace}", "--create-namespace", "--wait"
        )
        return f"Inspektor Gadget deployed as release {release} in namespace {namespace}"

    async def uninstall(self, release: str, namespace: str) -> str:
        await self._helm("uninstall", release, f"--namespace={namespace}", "--wait")
        return f"Inspektor Gadget release {release} uninstalled from namespace {namespace}"

    async def upgrade(self, chart: str, release: str, namespace: str) -> str:
        await self._helm("upgrade", release, chart, f"--namespace={namespace}", "--wait")
        return f"Inspektor Gadget release {release} in namespace {namespace} upgraded"

    async def check_release(self, release: str, namespace: str) -> None:
        await self._helm("status", release, f"--namespace={namespace}")

    async def _helm(self, *args: str) -> str:
        cmd = ["helm", *args, *self.kube.helm_args()]
        try:
            result = await run_command(cmd, timeout=self.timeout)
        except CommandError as e:
            raise ClusterError(str(e)) from e
        return result.stdout.decode("utf-8", errors="replace")
