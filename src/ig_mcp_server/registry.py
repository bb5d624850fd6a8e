"""Tool registry for the MCP server.

The GadgetToolRegistry owns the catalog of exposed tools. Registering tools
replaces entries by name and publishes the complete catalog, as an immutable
snapshot, to every subscriber. Preparation (discovery, descriptor fetch and
tool build) runs one at a time and registers the resulting set in one step,
so subscribers never see a partially built catalog.

In Kubernetes the gadget tools depend on the deployment state: placeholder
tools while Inspektor Gadget is not deployed, functional tools once it is.
A successful deploy schedules a background refresh that swaps them.
"""

import asyncio
import threading
from collections.abc import Callable, Coroutine
from typing import Any

from ig_mcp_server.cache import MetadataCache
from ig_mcp_server.discovery import (
    BuiltinDiscoverer,
    Discoverer,
    DiscoveryError,
    Gadget,
    from_images,
)
from ig_mcp_server.gadgets.manager import GadgetManager
from ig_mcp_server.lifecycle import (
    ChartVersionResolver,
    ClusterClient,
    ClusterError,
    HelmClient,
    detect_deployment,
    get_deploy_tool,
    get_instance_tool,
)
from ig_mcp_server.telemetry import (
    BACKGROUND_TASK_FAILED,
    DEPLOYMENT_CHECK_FAILED,
    DISCOVERY_COMPLETED,
    DISCOVERY_FAILED,
    TOOL_REGISTERED,
    TOOL_REGISTRY_REFRESH,
    TOOL_REGISTRY_UPDATED,
    get_logger,
)
from ig_mcp_server.tools import (
    ReadOnlyHint,
    ToolDescriptor,
    build_ephemeral_tools,
    build_gadget_tools,
    collect_gadget_infos,
)

log = get_logger(__name__)

RegistryCallback = Callable[[tuple[ToolDescriptor, ...]], None]


class GadgetToolRegistry:
    """Catalog of exposed tools with snapshot subscribers.

    Usage:
        registry = GadgetToolRegistry(manager, "kubernetes", cache, cluster=..., helm=...)
        registry.register_callback(server.set_tools)
        await registry.prepare(images=[])
    """

    def __init__(
        self,
        manager: GadgetManager,
        environment: str,
        cache: MetadataCache,
        discoverer: Discoverer | None = None,
        read_only: bool = False,
        cluster: ClusterClient | None = None,
        helm: HelmClient | None = None,
        version_resolver: ChartVersionResolver | None = None,
    ) -> None:
        """Initialize registry.

        Args:
            manager: Gadget manager used by the gadget and instance tools.
            environment: "kubernetes" or "linux".
            cache: Descriptor cache.
            discoverer: Configured gadget discoverer, None to skip it.
            read_only: Hide tools whose hint is MUTATING from snapshots.
            cluster: Cluster client, required in Kubernetes.
            helm: Helm client, required in Kubernetes.
            version_resolver: Chart version resolver for the deploy tool.
        """
        if environment == "kubernetes" and (cluster is None or helm is None):
            raise ValueError("cluster and helm clients are required in kubernetes")

        self.manager = manager
        self.environment = environment
        self.cache = cache
        self.discoverer = discoverer
        self.read_only = read_only
        self.cluster = cluster
        self.helm = helm
        self.version_resolver = version_resolver or ChartVersionResolver()

        self._tools: dict[str, ToolDescriptor] = {}
        self._callbacks: list[RegistryCallback] = []
        # Guards the catalog and the subscriber list
        self._lock = threading.RLock()
        # Serializes prepare/refresh rounds
        self._build_lock = asyncio.Lock()
        self._gadgets: list[Gadget] = []
        self._background: set[asyncio.Task[Any]] = set()

    def register_tools(self, *tools: ToolDescriptor) -> None:
        """Insert or replace tools by name and publish the new catalog."""
        with self._lock:
            for tool in tools:
                log.debug(TOOL_REGISTERED, tool_name=tool.name, read_only=tool.read_only.value)
                self._tools[tool.name] = tool
            snapshot = self._snapshot_locked()
            callbacks = list(self._callbacks)
            log.info(TOOL_REGISTRY_UPDATED, tools_count=len(snapshot))
            for callback in callbacks:
                callback(snapshot)

    def register_callback(self, callback: RegistryCallback) -> None:
        """Subscribe to catalog updates."""
        with self._lock:
            self._callbacks.append(callback)

    def snapshot(self) -> tuple[ToolDescriptor, ...]:
        """Current catalog, sorted by name, read-only filtering applied."""
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> tuple[ToolDescriptor, ...]:
        return tuple(
            tool
            for name, tool in sorted(self._tools.items())
            if not (self.read_only and tool.read_only is ReadOnlyHint.MUTATING)
        )

    async def prepare(self, images: list[str] | None = None) -> None:
        """Discover gadgets and register the tools of the environment.

        Args:
            images: Explicit gadget images; when empty the configured
                discoverer is used, then the builtin catalog.

        Raises:
            DiscoveryError: If no source yields gadgets and the builtin
                catalog cannot be read.
        """
        async with self._build_lock:
            self._gadgets = await self._discover(images or [])
            tools = await self._build_tools(self._gadgets)
        self.register_tools(*tools)

    async def refresh(self) -> None:
        """Rebuild the tools of the last discovered gadgets and register them."""
        log.info(TOOL_REGISTRY_REFRESH, gadgets=len(self._gadgets))
        async with self._build_lock:
            tools = await self._build_tools(self._gadgets)
        self.register_tools(*tools)

    def request_refresh(self) -> None:
        """Schedule refresh() in the background."""
        self._run_in_background(self.refresh())

    async def wait_for_background_tasks(self) -> None:
        """Wait for scheduled refreshes to complete."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def close(self) -> None:
        """Cancel scheduled refreshes."""
        for task in list(self._background):
            task.cancel()
        await self.wait_for_background_tasks()

    async def _discover(self, images: list[str]) -> list[Gadget]:
        gadgets = from_images(images)
        source = "images"

        if not gadgets and self.discoverer is not None:
            source = type(self.discoverer).__name__
            try:
                gadgets = await self.discoverer.list_gadgets()
            except DiscoveryError as e:
                log.warning(DISCOVERY_FAILED, source=source, error=str(e))

        if not gadgets:
            source = "builtin"
            gadgets = await BuiltinDiscoverer().list_gadgets()

        log.info(DISCOVERY_COMPLETED, source=source, gadgets=len(gadgets))
        return gadgets

    async def _build_tools(self, gadgets: list[Gadget]) -> list[ToolDescriptor]:
        tools = [get_instance_tool(self.manager)]
        if self.environment != "kubernetes":
            tools.extend(await self._gadget_tools(gadgets))
            return tools

        assert self.cluster is not None and self.helm is not None
        tools.append(
            get_deploy_tool(self.cluster, self.helm, self.version_resolver, self.request_refresh)
        )
        try:
            deployed, _ = await detect_deployment(self.cluster)
        except ClusterError as e:
            log.warning(DEPLOYMENT_CHECK_FAILED, error=str(e))
            deployed = False

        if deployed:
            tools.extend(await self._gadget_tools(gadgets))
        else:
            tools.extend(build_ephemeral_tools(gadgets))
        return tools

    async def _gadget_tools(self, gadgets: list[Gadget]) -> list[ToolDescriptor]:
        images = [gadget.image for gadget in gadgets]
        infos = await collect_gadget_infos(self.manager, self.cache, self.environment, images)
        return build_gadget_tools(self.environment, self.manager, infos)

    def _run_in_background(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        task.add_done_callback(_log_task_error)


def _log_task_error(task: asyncio.Task[Any]) -> None:
    """Log errors from background tasks."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        log.warning(BACKGROUND_TASK_FAILED, error=str(error), task_name=task.get_name())
