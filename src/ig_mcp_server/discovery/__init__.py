"""Gadget discovery.

Discoverers produce the catalog of gadget images to expose. The registry
uses the first non-empty source among an explicit image list, the
configured discoverer and the builtin catalog.
"""

from ig_mcp_server.discovery.artifacthub import SOURCE_ARTIFACTHUB, ArtifactHubDiscoverer
from ig_mcp_server.discovery.base import Discoverer, DiscoveryError, Gadget, from_images
from ig_mcp_server.discovery.builtin import SOURCE_BUILTIN, BuiltinDiscoverer

__all__ = [
    "ArtifactHubDiscoverer",
    "BuiltinDiscoverer",
    "Discoverer",
    "DiscoveryError",
    "Gadget",
    "SOURCE_ARTIFACTHUB",
    "SOURCE_BUILTIN",
    "from_images",
    "new_discoverer",
]


def new_discoverer(name: str, official_only: bool = True) -> Discoverer:
    """Create a discoverer by name.

    Args:
        name: "artifacthub" or "builtin".
        official_only: For Artifact Hub, keep only official packages.

    Raises:
        DiscoveryError: If the name is unknown.
    """
    if name == SOURCE_ARTIFACTHUB:
        return ArtifactHubDiscoverer(official_only=official_only)
    if name == SOURCE_BUILTIN:
        return BuiltinDiscoverer()
    raise DiscoveryError(f"unknown gadget discoverer: {name}")
