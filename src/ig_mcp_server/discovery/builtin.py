"""Discoverer backed by the gadget catalog shipped with the package."""

from importlib import resources

import orjson

from ig_mcp_server.discovery.base import Discoverer, DiscoveryError, Gadget
from ig_mcp_server.telemetry import (
    DISCOVERY_ENTRY_SKIPPED,
    DISCOVERY_LISTED,
    DISCOVERY_STARTED,
    get_logger,
)

log = get_logger(__name__)

SOURCE_BUILTIN = "builtin"


class BuiltinDiscoverer(Discoverer):
    """Lists the gadgets of the packaged ``data/gadgets.json`` catalog."""

    def __init__(self, data: bytes | None = None) -> None:
        """Initialize discoverer.

        Args:
            data: Catalog document to use instead of the packaged one.
        """
        self._data = data

    async def list_gadgets(self) -> list[Gadget]:
        log.debug(DISCOVERY_STARTED, source=SOURCE_BUILTIN)
        raw = self._data
        if raw is None:
            raw = resources.files(__package__).joinpath("data/gadgets.json").read_bytes()

        try:
            document = orjson.loads(raw)
            packages = document["packages"]
        except (orjson.JSONDecodeError, KeyError, TypeError) as e:
            raise DiscoveryError(f"failed to parse embedded gadgets JSON: {e}") from e

        gadgets = []
        for package in packages:
            image = package.get("container_image", "")
            if not image:
                log.warning(
                    DISCOVERY_ENTRY_SKIPPED,
                    source=SOURCE_BUILTIN,
                    name=package.get("normalized_name"),
                    reason="no image",
                )
                continue
            gadgets.append(Gadget(image=image, description=package.get("description", "")))

        log.debug(DISCOVERY_LISTED, source=SOURCE_BUILTIN, count=len(gadgets))
        return gadgets
