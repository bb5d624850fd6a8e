"""Bounded-concurrency fetch of gadget descriptors with retry and cache.

A fetch round takes a batch of images and an optional map of cached
descriptors. Cached images are answered without a remote call; the others
are fetched through GadgetManager.get_info with a fixed retry budget. At
most ``max_concurrency`` fetches are in flight. Every outcome is pushed to a
queue sized to the whole batch, so producers never wait on the consumer,
and the queue is drained only after all workers joined.

Images that still fail after the last attempt are logged and left out of
the result; the batch itself never fails.
"""

import asyncio
from dataclasses import dataclass

from ig_mcp_server.cache import CacheError, MetadataCache
from ig_mcp_server.gadgets.manager import GadgetManager, GadgetManagerError
from ig_mcp_server.gadgets.types import GadgetDescriptor
from ig_mcp_server.telemetry import (
    CACHE_LOAD_MISS,
    CACHE_SAVE_FAILED,
    GADGET_INFO_CACHE_HIT,
    GADGET_INFO_FETCH_COMPLETED,
    GADGET_INFO_FETCH_RETRY,
    GADGET_INFO_FETCH_SKIPPED,
    GADGET_INFO_FETCH_UNCACHED,
    GADGET_VERSION_UNAVAILABLE,
    get_logger,
)

log = get_logger(__name__)

MAX_CONCURRENCY = 10
MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 2.0


@dataclass(frozen=True)
class _FetchOutcome:
    image: str
    info: GadgetDescriptor | None = None
    error: Exception | None = None


async def fetch_with_retries(
    manager: GadgetManager,
    image: str,
    attempts: int = MAX_ATTEMPTS,
    retry_delay: float = RETRY_DELAY_SECONDS,
) -> GadgetDescriptor:
    """Fetch one descriptor, retrying with a fixed delay.

    Raises:
        GadgetManagerError: If every attempt failed.
    """
    last_error: Exception | None = None
    for attempt in range(attempts):
        try:
            return await manager.get_info(image)
        except GadgetManagerError as e:
            last_error = e
            log.warning(GADGET_INFO_FETCH_RETRY, image=image, attempt=attempt + 1, error=str(e))
            if attempt < attempts - 1:
                await asyncio.sleep(retry_delay)

    raise GadgetManagerError(
        f"failed to get gadget info after {attempts} attempts: {last_error}"
    )


async def fetch_gadget_infos(
    manager: GadgetManager,
    images: list[str],
    cached: dict[str, GadgetDescriptor] | None = None,
    max_concurrency: int = MAX_CONCURRENCY,
    attempts: int = MAX_ATTEMPTS,
    retry_delay: float = RETRY_DELAY_SECONDS,
) -> dict[str, GadgetDescriptor]:
    """Resolve descriptors for a batch of images.

    Args:
        manager: Manager used for remote fetches.
        images: Image references (duplicates are fetched once).
        cached: Previously cached descriptors by image.
        max_concurrency: Upper bound of in-flight fetches.
        attempts: Attempts per image.
        retry_delay: Seconds between attempts.

    Returns:
        Descriptors of every image that was cached or fetched successfully.
    """
    batch = list(dict.fromkeys(images))
    if not batch:
        return {}

    admission = asyncio.Semaphore(max_concurrency)
    outcomes: asyncio.Queue[_FetchOutcome] = asyncio.Queue(maxsize=len(batch))

    async def fetch_one(image: str) -> None:
        async with admission:
            if cached and image in cached:
                log.debug(GADGET_INFO_CACHE_HIT, image=image)
                outcomes.put_nowait(_FetchOutcome(image=image, info=cached[image]))
                return
            try:
                info = await fetch_with_retries(manager, image, attempts, retry_delay)
            except GadgetManagerError as e:
                outcomes.put_nowait(_FetchOutcome(image=image, error=e))
            else:
                outcomes.put_nowait(_FetchOutcome(image=image, info=info))

    await asyncio.gather(*(fetch_one(image) for image in batch))

    infos: dict[str, GadgetDescriptor] = {}
    while not outcomes.empty():
        outcome = outcomes.get_nowait()
        if outcome.info is None:
            log.warning(GADGET_INFO_FETCH_SKIPPED, image=outcome.image, error=str(outcome.error))
            continue
        infos[outcome.image] = outcome.info

    log.debug(GADGET_INFO_FETCH_COMPLETED, requested=len(batch), resolved=len(infos))
    return infos


async def collect_gadget_infos(
    manager: GadgetManager,
    cache: MetadataCache,
    environment: str,
    images: list[str],
) -> dict[str, GadgetDescriptor]:
    """Run a full fetch round: load cache, fetch, and write the cache back.

    The whole successful result (cache hits included) is saved under the
    current runtime version, so an image that failed in an earlier round is
    filled in once it succeeds.

    Returns:
        Descriptors by image.
    """
    try:
        version = await manager.get_version()
    except GadgetManagerError as e:
        log.warning(GADGET_VERSION_UNAVAILABLE, error=str(e))
        version = ""

    cached: dict[str, GadgetDescriptor] = {}
    if version:
        try:
            cached = cache.load(version, environment)
        except CacheError as e:
            log.debug(CACHE_LOAD_MISS, version=version, reason=str(e))
    if not cached:
        log.info(GADGET_INFO_FETCH_UNCACHED, images=len(images))

    infos = await fetch_gadget_infos(manager, images, cached)

    if version:
        try:
            cache.save(version, environment, infos)
        except CacheError as e:
            log.warning(CACHE_SAVE_FAILED, error=str(e))
    return infos
