"""Discoverer querying the Artifact Hub catalog of Inspektor Gadget packages."""

import asyncio
from typing import Any

import httpx

from ig_mcp_server.discovery.base import Discoverer, DiscoveryError, Gadget
from ig_mcp_server.telemetry import DISCOVERY_ENTRY_SKIPPED, DISCOVERY_LISTED, get_logger

log = get_logger(__name__)

SOURCE_ARTIFACTHUB = "artifacthub"

ARTIFACTHUB_API_URL = "https://artifacthub.io/api/v1"
# Artifact Hub repository kind of Inspektor Gadget gadgets
INSPEKTOR_GADGET_KIND = 22
_PAGE_SIZE = 60
_MAX_CONCURRENT_DETAILS = 10


class ArtifactHubDiscoverer(Discoverer):
    """Lists gadgets published on Artifact Hub.

    The search endpoint is paged through; the container image of each
    package is read from its detail document.
    """

    def __init__(
        self,
        official_only: bool = True,
        base_url: str = ARTIFACTHUB_API_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize discoverer.

        Args:
            official_only: Keep only packages from official repositories.
            base_url: Artifact Hub API base URL.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.official_only = official_only
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def list_gadgets(self) -> list[Gadget]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                packages = await self._search(client)
                semaphore = asyncio.Semaphore(_MAX_CONCURRENT_DETAILS)

                async def image_of(package: dict[str, Any]) -> str:
                    async with semaphore:
                        return await self._container_image(client, package)

                images = await asyncio.gather(*(image_of(p) for p in packages))
        except httpx.HTTPError as e:
            raise DiscoveryError(f"querying Artifact Hub: {e}") from e

        gadgets = []
        for package, image in zip(packages, images):
            if not image:
                log.warning(
                    DISCOVERY_ENTRY_SKIPPED,
                    source=SOURCE_ARTIFACTHUB,
                    name=package.get("name"),
                    reason="no image",
                )
                continue
            gadgets.append(Gadget(image=image, description=package.get("description", "")))

        log.debug(DISCOVERY_LISTED, source=SOURCE_ARTIFACTHUB, count=len(gadgets))
        return gadgets

    async def _search(self, client: httpx.AsyncClient) -> list[dict[str, Any]]:
        packages: list[dict[str, Any]] = []
        offset = 0
        while True:
            params: dict[str, Any] = {
                "kind": INSPEKTOR_GADGET_KIND,
                "limit": _PAGE_SIZE,
                "offset": offset,
            }
            if self.official_only:
                params["official"] = "true"
            response = await client.get("/packages/search", params=params)
            response.raise_for_status()
            page = response.json().get("packages") or []
            packages.extend(page)

            total = int(response.headers.get("pagination-total-count", len(packages)))
            offset += len(page)
            if not page or offset >= total:
                return packages

    async def _container_image(self, client: httpx.AsyncClient, package: dict[str, Any]) -> str:
        repository = (package.get("repository") or {}).get("name", "")
        name = package.get("name", "")
        response = await client.get(f"/packages/inspektor-gadget/{repository}/{name}")
        response.raise_for_status()
        for image in response.json().get("containers_images") or []:
            if image.get("image"):
                return image["image"]
        return ""
