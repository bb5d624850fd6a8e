"""Chart version resolution for deploy and upgrade.

The version used for a chart operation is, in order of precedence: the
version given by the caller, the latest Inspektor Gadget release published
on GitHub, and the version bundled with this package. The GitHub lookup is
done at most once per resolver; its outcome, success or failure, is kept
for the lifetime of the resolver.
"""

import asyncio

import httpx

from ig_mcp_server.telemetry import (
    CHART_VERSION_RESOLVED,
    LATEST_RELEASE_LOOKUP_FAILED,
    get_logger,
)

log = get_logger(__name__)

LATEST_RELEASE_URL = (
    "https://api.github.com/repos/inspektor-gadget/inspektor-gadget/releases/latest"
)
# Inspektor Gadget release this package is tested against
BUNDLED_GADGET_VERSION = "0.44.1"

_LOOKUP_TIMEOUT_SECONDS = 5.0


class ChartVersionResolver:
    """Resolves the chart version, looking up the latest release once.

    Usage:
        resolver = ChartVersionResolver()
        version = await resolver.resolve()          # latest or bundled
        version = await resolver.resolve("0.40.0")  # explicit wins
    """

    def __init__(
        self,
        release_url: str = LATEST_RELEASE_URL,
        fallback_version: str = BUNDLED_GADGET_VERSION,
        timeout: float = _LOOKUP_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize resolver.

        Args:
            release_url: GitHub "latest release" API URL.
            fallback_version: Version used when the lookup fails.
            timeout: Lookup timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.release_url = release_url
        self.fallback_version = fallback_version
        self.timeout = timeout
        self._transport = transport
        self._lock = asyncio.Lock()
        self._looked_up = False
        self._latest: str | None = None

    async def resolve(self, explicit: str = "") -> str:
        """Version to deploy.

        Args:
            explicit: Version requested by the caller, used as is when set.
        """
        if explicit:
            return explicit

        latest = await self.latest()
        version = latest or self.fallback_version
        log.debug(CHART_VERSION_RESOLVED, version=version, latest=latest is not None)
        return version

    async def latest(self) -> str | None:
        """Latest published release without the leading "v", None if unavailable."""
        async with self._lock:
            if not self._looked_up:
                self._latest = await self._fetch_latest()
                self._looked_up = True
            return self._latest

    async def _fetch_latest(self) -> str | None:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(self.release_url)
                response.raise_for_status()
                release = response.json()
        except (httpx.HTTPError, ValueError) as e:
            log.warning(LATEST_RELEASE_LOOKUP_FAILED, url=self.release_url, error=str(e))
            return None

        tag = release.get("tag_name") if isinstance(release, dict) else None
        if not isinstance(tag, str) or not tag:
            log.warning(LATEST_RELEASE_LOOKUP_FAILED, url=self.release_url, error="no tag_name")
            return None
        return tag.removeprefix("v")
