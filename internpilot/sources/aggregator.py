"""Concurrent fan-out over listing sources."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait

from internpilot.config import AGGREGATE_TIMEOUT
from internpilot.log import get_logger
from internpilot.models import ListingRecord
from internpilot.sources import ListingSource, PlatformQuery, get_sources

log = get_logger(__name__)


def aggregate(
    query: PlatformQuery,
    platforms: list[str] | None = None,
    *,
    sources: list[ListingSource] | None = None,
    timeout: float = AGGREGATE_TIMEOUT,
) -> list[ListingRecord]:
    """Query every source concurrently and concatenate results in source order.

    A source that fails contributes nothing. One still running when
    ``timeout`` elapses is abandoned and contributes nothing either.
    """
    if sources is None:
        sources = get_sources(platforms or [])
    if not sources:
        return []

    pool = ThreadPoolExecutor(max_workers=len(sources), thread_name_prefix="source")
    try:
        futures = [pool.submit(source.search, query) for source in sources]
        done, pending = wait(futures, timeout=timeout)
        for source, future in zip(sources, futures):
            if future in pending:
                log.warning("%s did not answer within %.0fs — dropped", source.name, timeout)

        results: list[ListingRecord] = []
        for source, future in zip(sources, futures):
            if future not in done:
                continue
            exc = future.exception()
            if exc is not None:
                log.error("%s raised: %s", source.name, exc)
                continue
            results.extend(future.result())
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    log.info("Aggregated %d listing(s) from %d source(s)", len(results), len(sources))
    return results
