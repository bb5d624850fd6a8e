"""Gadget manager: run, stop and inspect gadgets on the remote runtime.

The manager owns the output capture of foreground and attached executions.
Records are delivered by the runtime, possibly concurrently from several
data sources of one gadget, serialized to JSON lines and accumulated under a
lock private to that execution. The captured buffer goes through the
truncation policy in ``ig_mcp_server.gadgets.results`` before it is returned.

In-flight executions are tracked so ``close()`` can cancel them at shutdown.
"""

import asyncio
import secrets
import threading
from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import Any, TypeVar

import orjson

from ig_mcp_server.gadgets.results import TruncationMode, govern
from ig_mcp_server.gadgets.runtime import (
    CliGadgetRuntime,
    GadgetRuntime,
    GadgetRuntimeError,
    RunRequest,
    RuntimeInstance,
)
from ig_mcp_server.gadgets.types import GadgetDescriptor, GadgetInstance
from ig_mcp_server.kubeconfig import KubeOptions
from ig_mcp_server.telemetry import (
    GADGET_ATTACHED,
    GADGET_DETACHED,
    GADGET_RUN_CANCELLED,
    GADGET_RUN_COMPLETED,
    GADGET_RUN_STARTED,
    GADGET_STOPPED,
    get_logger,
)

log = get_logger(__name__)

T = TypeVar("T")

CREATED_BY = "ig-mcp-server"
CREATED_BY_TAG_PREFIX = "createdBy="
ATTACH_TIMEOUT_SECONDS = 5.0
COLLECT_TIMEOUT_SECONDS = 1.0


class GadgetManagerError(Exception):
    """Raised when a gadget operation fails; the message names the operation."""

    pass


class OutputCollector:
    """Accumulates records of one execution as line-delimited JSON."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buffer = bytearray()

    def add(self, record: dict[str, Any]) -> None:
        data = orjson.dumps(record, default=str)
        with self._lock:
            self._buffer += data
            self._buffer += b"\n"

    def getvalue(self) -> bytes:
        with self._lock:
            return bytes(self._buffer)


class GadgetManager:
    """Run, stop and inspect gadgets through a GadgetRuntime.

    Usage:
        manager = GadgetManager(CliGadgetRuntime("kubernetes"))
        output = await manager.run("trace_dns:latest", {}, timeout=10)
        instance_id = await manager.run_detached("trace_exec:latest", {})
        await manager.close()
    """

    def __init__(self, runtime: GadgetRuntime, created_by: str = CREATED_BY) -> None:
        """Initialize manager.

        Args:
            runtime: Backend to execute gadgets on.
            created_by: Value of the ``createdBy`` tag put on detached instances.
        """
        self.runtime = runtime
        self.created_by = created_by
        self._inflight: set[asyncio.Future[Any]] = set()
        self._closed = False

    async def run(self, image: str, params: dict[str, str], timeout: float | None) -> str:
        """Run a gadget in the foreground and return its captured output.

        Args:
            image: Gadget image reference.
            params: Gadget parameters.
            timeout: Seconds to run for, None to run until the gadget exits.

        Returns:
            Output wrapped in result markers, truncated keeping the head.

        Raises:
            GadgetManagerError: If the backend call fails or shutdown cancels it.
        """
        collector = OutputCollector()
        request = RunRequest(target=image, params=dict(params), timeout=timeout)
        log.debug(GADGET_RUN_STARTED, image=image, params=params, timeout=timeout)

        await self._execute(
            self.runtime.run_gadget(request, collector.add), action="running gadget"
        )

        result = govern(collector.getvalue(), TruncationMode.FULL)
        log.debug(
            GADGET_RUN_COMPLETED,
            image=image,
            output_bytes=len(result.output),
            truncated=result.truncated,
        )
        return result.render()

    async def run_detached(self, image: str, params: dict[str, str]) -> str:
        """Start a gadget in the background.

        Args:
            image: Gadget image reference.
            params: Gadget parameters.

        Returns:
            Hex-encoded 128-bit ID of the new instance.

        Raises:
            GadgetManagerError: If the backend cannot schedule the gadget.
        """
        instance_id = secrets.token_hex(16)
        request = RunRequest(
            target=image,
            params=dict(params),
            detach=True,
            instance_id=instance_id,
            tags=(f"{CREATED_BY_TAG_PREFIX}{self.created_by}",),
        )
        await self._execute(
            self.runtime.run_gadget(request, lambda record: None), action="running gadget"
        )
        log.info(GADGET_DETACHED, image=image, gadget_id=instance_id)
        return instance_id

    async def get_results(self, instance_id: str) -> str:
        """Sample the output of a running instance without stopping it.

        Collection lasts COLLECT_TIMEOUT_SECONDS, the attach as a whole is
        bounded by ATTACH_TIMEOUT_SECONDS.

        Returns:
            Output wrapped in result markers, truncated keeping the tail.

        Raises:
            GadgetManagerError: If attaching fails or times out.
        """
        collector = OutputCollector()
        request = RunRequest(target=instance_id, attach=True, timeout=COLLECT_TIMEOUT_SECONDS)
        await self._execute(
            self.runtime.run_gadget(request, collector.add),
            action="attaching to gadget",
            timeout=ATTACH_TIMEOUT_SECONDS,
        )
        result = govern(collector.getvalue(), TruncationMode.LATEST)
        log.debug(GADGET_ATTACHED, gadget_id=instance_id, output_bytes=len(result.output))
        return result.render()

    async def stop(self, instance_id: str) -> None:
        """Stop a detached instance.

        Raises:
            GadgetManagerError: If the backend reports a failure, e.g. an unknown ID.
        """
        await self._call(self.runtime.remove_instance(instance_id), "stopping gadget")
        log.info(GADGET_STOPPED, gadget_id=instance_id)

    async def get_info(self, image: str) -> GadgetDescriptor:
        """Fetch the descriptor of a gadget image. No retry is done here."""
        return await self._call(self.runtime.get_gadget_info(image), "getting gadget info")

    async def get_version(self) -> str:
        """Version reported by the backend, used to partition the info cache."""
        return await self._call(self.runtime.get_version(), "getting version")

    async def list_gadgets(self) -> list[GadgetInstance]:
        """List running instances."""
        instances = await self._call(self.runtime.list_instances(), "listing gadgets")
        return [instance_from_runtime(instance) for instance in instances]

    @property
    def inflight_count(self) -> int:
        """Number of executions currently in flight."""
        return len(self._inflight)

    async def close(self) -> None:
        """Cancel every in-flight execution and refuse new ones.

        Detached instances keep running on the backend.
        """
        self._closed = True
        pending = list(self._inflight)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _execute(
        self, call: Awaitable[None], action: str, timeout: float | None = None
    ) -> None:
        if self._closed:
            _close_awaitable(call)
            raise GadgetManagerError(f"{action}: gadget manager is closed")

        task = asyncio.ensure_future(call)
        self._inflight.add(task)
        try:
            if timeout is None:
                await task
            else:
                await asyncio.wait_for(task, timeout=timeout)
        except asyncio.TimeoutError:
            raise GadgetManagerError(f"{action}: timed out after {timeout:g}s") from None
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            log.info(GADGET_RUN_CANCELLED, action=action)
            raise GadgetManagerError(f"{action}: cancelled by shutdown") from None
        except GadgetRuntimeError as e:
            raise GadgetManagerError(f"{action}: {e}") from e
        finally:
            self._inflight.discard(task)

    async def _call(self, call: Awaitable[T], action: str) -> T:
        try:
            return await call
        except GadgetRuntimeError as e:
            raise GadgetManagerError(f"{action}: {e}") from e


def _close_awaitable(call: Awaitable[Any]) -> None:
    # Avoid "coroutine was never awaited" warnings for refused calls
    close = getattr(call, "close", None)
    if close is not None:
        close()


def instance_from_runtime(instance: RuntimeInstance) -> GadgetInstance:
    """Convert a backend instance into the public representation.

    ``createdBy`` comes from the first ``createdBy=`` tag, ``params`` lists the
    non-empty parameter values as ``key="value"`` pairs.
    """
    created_by = ""
    for tag in instance.tags:
        if tag.startswith(CREATED_BY_TAG_PREFIX):
            created_by = tag[len(CREATED_BY_TAG_PREFIX) :]
            break

    params = [
        f"{key}={orjson.dumps(value).decode()}"
        for key, value in sorted(instance.param_values.items())
        if value != ""
    ]

    started_at = ""
    if instance.time_created:
        started_at = datetime.fromtimestamp(instance.time_created, tz=timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%SZ"
        )

    return GadgetInstance(
        id=instance.id,
        gadget_image=instance.image_name,
        params=",".join(params),
        created_by=created_by,
        started_at=started_at,
    )


def new_gadget_manager(
    environment: str, linux_remote_address: str = "", kube: KubeOptions | None = None
) -> GadgetManager:
    """Build a GadgetManager for the configured environment.

    Raises:
        GadgetManagerError: If the environment is unsupported or incomplete.
    """
    if environment not in ("kubernetes", "linux"):
        raise GadgetManagerError(f"unsupported gadget manager environment: {environment}")
    if environment == "linux" and not linux_remote_address:
        raise GadgetManagerError("linux_remote_address must be set when environment is linux")
    runtime = CliGadgetRuntime(environment, remote_address=linux_remote_address, kube=kube)
    return GadgetManager(runtime)
