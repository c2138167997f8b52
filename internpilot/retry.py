"""Retry decorator with exponential backoff."""
from __future__ import annotations

import functools
import logging
import random
import time
from typing import Any, Callable, Tuple, Type

logger = logging.getLogger(__name__)


def backoff_delays(
    retries: int,
    base_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 30.0,
) -> list[float]:
    """Delays slept between attempts, e.g. ``[1.0, 2.0]`` for two retries."""
    return [min(base_delay * (backoff_factor ** n), max_delay) for n in range(retries)]


def retry(
    *,
    retries: int = 2,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = False,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable:
    """Decorator: re-invokes the wrapped function on ``retryable`` errors.

    ``retries`` counts the extra attempts after the first call, so the default
    makes at most three calls, sleeping 1s then 2s. Non-retryable exceptions
    propagate immediately; the last retryable one is re-raised when exhausted.
    """

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delays = backoff_delays(retries, base_delay, backoff_factor, max_delay)
            attempt = 0
            while True:
                attempt += 1
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if attempt > retries:
                        logger.error(
                            "%s failed after %d attempts: %s",
                            fn.__qualname__,
                            attempt,
                            exc,
                        )
                        raise
                    delay = delays[attempt - 1]
                    if jitter:
                        delay *= 0.5 + random.random()
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__,
                        attempt,
                        retries + 1,
                        exc,
                        delay,
                    )
                    time.sleep(delay)

        return wrapper

    return decorator
