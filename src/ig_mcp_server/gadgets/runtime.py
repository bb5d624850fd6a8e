"""Remote gadget runtime adapters.

The GadgetRuntime interface is the boundary to the Inspektor Gadget backend:
running gadgets (foreground, detached or attached to an existing instance),
removing instances, and reading gadget info, instance lists and the server
version. CliGadgetRuntime implements it on top of the Inspektor Gadget
client binaries, ``kubectl gadget`` for Kubernetes and ``gadgetctl`` for a
remote Linux daemon.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import orjson
from pydantic import ValidationError

from ig_mcp_server.gadgets.types import GadgetDescriptor
from ig_mcp_server.kubeconfig import KubeOptions
from ig_mcp_server.process import CommandError, run_command, stream_command
from ig_mcp_server.telemetry import GADGET_OUTPUT_NOT_JSON, get_logger

log = get_logger(__name__)

RecordCallback = Callable[[dict[str, Any]], None]

_COMMAND_TIMEOUT_SECONDS = 60.0


class GadgetRuntimeError(Exception):
    """Raised when a call to the gadget backend fails."""

    pass


@dataclass(frozen=True)
class RunRequest:
    """Parameters of a single gadget execution.

    Attributes:
        target: Image reference, or instance ID when ``attach`` is set.
        params: Gadget parameters keyed by prefix+key.
        timeout: Collection window in seconds (None means until the gadget exits).
        detach: Start in the background and return once scheduled.
        attach: Attach to the existing instance named by ``target``.
        instance_id: ID to assign to a detached instance.
        tags: Tags to attach to a detached instance.
    """

    target: str
    params: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None
    detach: bool = False
    attach: bool = False
    instance_id: str | None = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class RuntimeInstance:
    """A gadget instance as reported by the backend."""

    id: str
    image_name: str
    tags: tuple[str, ...] = ()
    param_values: dict[str, str] = field(default_factory=dict)
    time_created: int = 0


class GadgetRuntime(ABC):
    """Interface to the remote gadget execution backend."""

    @abstractmethod
    async def run_gadget(self, request: RunRequest, on_record: RecordCallback) -> None:
        """Execute a gadget, delivering every emitted record to ``on_record``.

        ``on_record`` may be invoked concurrently for gadgets with several
        data sources. For detached requests no records are delivered.
        """

    @abstractmethod
    async def remove_instance(self, instance_id: str) -> None:
        """Stop and remove a detached instance."""

    @abstractmethod
    async def get_gadget_info(self, image: str) -> GadgetDescriptor:
        """Fetch the descriptor of a gadget image."""

    @abstractmethod
    async def list_instances(self) -> list[RuntimeInstance]:
        """List instances currently known to the backend."""

    @abstractmethod
    async def get_version(self) -> str:
        """Version string reported by the backend."""


def _param_flags(params: dict[str, str]) -> list[str]:
    """Translate a prefix+key parameter map into CLI flags.

    The CLI exposes parameters by their bare key, so the namespace prefix
    (everything up to the last dot) is dropped. Empty values keep the
    gadget's own default.
    """
    flags = []
    for full_key, value in sorted(params.items()):
        if value == "":
            continue
        flags.append(f"--{full_key.rsplit('.', 1)[-1]}={value}")
    return flags


class CliGadgetRuntime(GadgetRuntime):
    """GadgetRuntime backed by the Inspektor Gadget client binaries."""

    def __init__(
        self,
        environment: str,
        remote_address: str = "",
        kube: KubeOptions | None = None,
    ) -> None:
        """Initialize runtime.

        Args:
            environment: "kubernetes" or "linux".
            remote_address: Daemon address, required for "linux".
            kube: Kubernetes connection flags for "kubernetes".

        Raises:
            GadgetRuntimeError: If the environment is unsupported or incomplete.
        """
        if environment == "kubernetes":
            self._base_cmd = ["kubectl", "gadget", *(kube or KubeOptions()).kubectl_args()]
        elif environment == "linux":
            if not remote_address:
                raise GadgetRuntimeError("remote address must be set when environment is linux")
            self._base_cmd = ["gadgetctl", f"--remote-address={remote_address}"]
        else:
            raise GadgetRuntimeError(f"unsupported gadget runtime environment: {environment}")
        self.environment = environment

    async def run_gadget(self, request: RunRequest, on_record: RecordCallback) -> None:
        if request.detach:
            cmd = [*self._base_cmd, "run", request.target, "--detach"]
            if request.instance_id:
                cmd.append(f"--id={request.instance_id}")
            if request.tags:
                cmd.append(f"--tags={','.join(request.tags)}")
            cmd.extend(_param_flags(request.params))
            await self._run(cmd)
            return

        if request.attach:
            cmd = [*self._base_cmd, "attach", request.target, "--output=json"]
        else:
            cmd = [*self._base_cmd, "run", request.target, "--output=json"]
            cmd.extend(_param_flags(request.params))

        def on_line(line: bytes) -> None:
            try:
                record = orjson.loads(line)
            except orjson.JSONDecodeError:
                log.debug(GADGET_OUTPUT_NOT_JSON, line=line[:200].decode("utf-8", "replace"))
                return
            if isinstance(record, dict):
                on_record(record)
            else:
                on_record({"value": record})

        try:
            result = await stream_command(cmd, on_line, timeout=request.timeout)
        except CommandError as e:
            raise GadgetRuntimeError(str(e)) from e
        if not result.timed_out and not result.ok:
            raise GadgetRuntimeError(result.error_text())

    async def remove_instance(self, instance_id: str) -> None:
        await self._run([*self._base_cmd, "delete", instance_id])

    async def get_gadget_info(self, image: str) -> GadgetDescriptor:
        stdout = await self._run([*self._base_cmd, "image", "inspect", image, "--output=json"])
        try:
            data = orjson.loads(stdout)
            if isinstance(data, dict):
                data.setdefault("imageName", image)
            return GadgetDescriptor.model_validate(data)
        except (orjson.JSONDecodeError, ValidationError) as e:
            raise GadgetRuntimeError(f"decoding gadget info for {image}: {e}") from e

    async def list_instances(self) -> list[RuntimeInstance]:
        stdout = await self._run([*self._base_cmd, "list", "--output=json"])
        try:
            items = orjson.loads(stdout) if stdout.strip() else []
        except orjson.JSONDecodeError as e:
            raise GadgetRuntimeError(f"decoding gadget instances: {e}") from e

        instances = []
        for item in items or []:
            config = item.get("gadgetConfig") or {}
            instances.append(
                RuntimeInstance(
                    id=item.get("id", ""),
                    image_name=config.get("imageName", ""),
                    tags=tuple(item.get("tags") or ()),
                    param_values=dict(config.get("paramValues") or {}),
                    time_created=int(item.get("timeCreated") or 0),
                )
            )
        return instances

    async def get_version(self) -> str:
        stdout = await self._run([*self._base_cmd, "version"])
        for line in stdout.decode("utf-8", errors="replace").splitlines():
            label, _, value = line.partition(":")
            if label.strip().lower() == "server version":
                return value.strip()
        raise GadgetRuntimeError("server version not reported")

    async def _run(self, cmd: list[str]) -> bytes:
        try:
            result = await run_command(cmd, timeout=_COMMAND_TIMEOUT_SECONDS)
        except CommandError as e:
            raise GadgetRuntimeError(str(e)) from e
        return result.stdout
