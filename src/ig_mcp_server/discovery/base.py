"""Discoverer interface and shared types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class DiscoveryError(Exception):
    """Raised when a discoverer cannot produce its gadget list."""

    pass


@dataclass(frozen=True)
class Gadget:
    """A discoverable gadget.

    Attributes:
        image: Image reference, e.g. 'ghcr.io/inspektor-gadget/gadget/trace_dns:latest'.
        description: Short description, shown while the gadget is not usable yet.
    """

    image: str
    description: str = ""


class Discoverer(ABC):
    """Source of the catalog of available gadget images."""

    @abstractmethod
    async def list_gadgets(self) -> list[Gadget]:
        """Return the available gadgets in a stable order.

        Raises:
            DiscoveryError: If the catalog cannot be produced.
        """


def from_images(images: list[str] | None) -> list[Gadget]:
    """Build gadgets from an explicit image list, dropping blank entries."""
    return [Gadget(image=image.strip()) for image in images or [] if image.strip()]
