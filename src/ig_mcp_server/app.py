"""Server assembly and run loop.

Builds the gadget manager, discoverer, tool registry and MCP server from the
configuration, prepares the initial catalog and serves until the transport
closes or a shutdown signal arrives. Construction and preparation failures
are fatal: they are logged and turn into exit code 1.
"""

import asyncio
import signal

from ig_mcp_server.cache import MetadataCache
from ig_mcp_server.config import AppConfig
from ig_mcp_server.discovery import Discoverer, DiscoveryError, new_discoverer
from ig_mcp_server.gadgets.manager import GadgetManager, GadgetManagerError, new_gadget_manager
from ig_mcp_server.kubeconfig import KubeOptions
from ig_mcp_server.lifecycle import HelmCliClient, KubectlClusterClient
from ig_mcp_server.registry import GadgetToolRegistry
from ig_mcp_server.server import GadgetMCPServer
from ig_mcp_server.telemetry import FATAL_ERROR, SHUTDOWN_SIGNAL_RECEIVED, get_logger

log = get_logger(__name__)


def kube_options(config: AppConfig) -> KubeOptions:
    """Kubernetes CLI flags from the configuration."""
    return KubeOptions(
        kubeconfig=config.kubeconfig,
        context=config.kube_context,
        user=config.kube_user,
        token=config.kube_token,
    )


def build_registry(
    config: AppConfig, manager: GadgetManager, discoverer: Discoverer | None
) -> GadgetToolRegistry:
    """Tool registry for the configured environment."""
    cluster = helm = None
    if config.environment == "kubernetes":
        kube = kube_options(config)
        cluster = KubectlClusterClient(kube)
        helm = HelmCliClient(kube)

    return GadgetToolRegistry(
        manager=manager,
        environment=config.environment,
        cache=MetadataCache(config.cache_dir),
        discoverer=discoverer,
        read_only=config.read_only,
        cluster=cluster,
        helm=helm,
    )


async def run(config: AppConfig) -> int:
    """Run the server.

    Returns:
        Process exit code.
    """
    try:
        manager = new_gadget_manager(
            config.environment,
            linux_remote_address=config.linux_remote_address,
            kube=kube_options(config),
        )
    except GadgetManagerError as e:
        log.error(FATAL_ERROR, reason="failed to create gadget manager", error=str(e))
        return 1

    discoverer = None
    if config.gadget_discoverer:
        try:
            discoverer = new_discoverer(config.gadget_discoverer, config.artifacthub_official)
        except DiscoveryError as e:
            log.error(FATAL_ERROR, reason="failed to create gadget discoverer", error=str(e))
            return 1

    registry = build_registry(config, manager, discoverer)
    server = GadgetMCPServer()
    registry.register_callback(server.set_tools)

    try:
        await registry.prepare(config.gadget_images)
    except DiscoveryError as e:
        log.error(FATAL_ERROR, reason="failed to prepare tool registry", error=str(e))
        await manager.close()
        return 1

    try:
        await serve_until_stopped(server, config)
    except Exception as e:
        log.error(FATAL_ERROR, reason="server failed", error=str(e), exc_info=True)
        return 1
    finally:
        await registry.close()
        await manager.close()
    return 0


async def serve_until_stopped(
    server: GadgetMCPServer, config: AppConfig, stop: asyncio.Event | None = None
) -> None:
    """Serve until the transport closes or ``stop`` is set (SIGINT/SIGTERM set it)."""
    stop = stop or asyncio.Event()
    _install_signal_handlers(stop)

    serve_task = asyncio.create_task(
        server.serve(config.transport, config.transport_host, config.transport_port)
    )
    stop_task = asyncio.create_task(stop.wait())
    try:
        done, _ = await asyncio.wait({serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if stop_task in done:
            log.info(SHUTDOWN_SIGNAL_RECEIVED)
            server.shutdown()
        await serve_task
    finally:
        stop_task.cancel()
        _remove_signal_handlers()


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform or outside the main thread
            pass


def _remove_signal_handlers() -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.remove_signal_handler(sig)
        except (NotImplementedError, RuntimeError):
            pass
