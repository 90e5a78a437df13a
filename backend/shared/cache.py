"""In-process TTL cache with stale fallback for rarely-changing rows.

Backed by cachetools.TTLCache. Only the settings row goes through here;
queue state itself lives in the session's QueueState, never in a cache.

When the database is unreachable, a read returns the last value it ever
saw (even past TTL) so the queue keeps accepting commands.
"""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

# Distinguishes "not cached" from a cached None
_MISSING = object()

T = TypeVar("T")


class AsyncTTLCache:
    """Fresh TTL tier plus an unbounded-by-time last-known-good tier."""

    def __init__(self, maxsize: int = 32, ttl: float = 60.0):
        self._fresh: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._last_good: dict[str, Any] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, key: str) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    def get(self, key: str) -> Any:
        """Return fresh value or ``_MISSING``."""
        return self._fresh.get(key, _MISSING)

    def get_stale(self, key: str) -> Any:
        """Return last-known-good value or ``_MISSING``."""
        return self._last_good.get(key, _MISSING)

    def set(self, key: str, value: Any) -> None:
        self._fresh[key] = value
        self._last_good[key] = value

    def invalidate(self, key: str) -> None:
        """Drop the fresh value; the stale copy survives for fallback."""
        self._fresh.pop(key, None)

    def clear(self) -> None:
        self._fresh.clear()

    @property
    def size(self) -> int:
        return len(self._fresh)


def cached(
    cache: AsyncTTLCache,
    key_func: Callable[..., str],
    *,
    retry: int = 3,
    retry_delay: float = 1.0,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Cache an async loader, retrying and falling back to stale data on failure.

    After *retry* failed attempts the stale value is returned with a warning
    if one exists; otherwise the last exception is re-raised.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            key = key_func(*args, **kwargs)

            hit = cache.get(key)
            if hit is not _MISSING:
                return hit

            async with cache.lock_for(key):
                hit = cache.get(key)
                if hit is not _MISSING:
                    return hit

                last_exc: Exception | None = None
                for attempt in range(1, retry + 1):
                    try:
                        value = await func(*args, **kwargs)
                    except asyncio.CancelledError:
                        raise
                    except Exception as exc:
                        last_exc = exc
                        if attempt < retry:
                            logger.warning(
                                "Load attempt %d/%d failed for %s: %s",
                                attempt,
                                retry,
                                key,
                                type(exc).__name__,
                            )
                            await asyncio.sleep(retry_delay * attempt)
                        continue
                    cache.set(key, value)
                    return value

                stale = cache.get_stale(key)
                if stale is not _MISSING:
                    logger.warning("Serving stale %s (%s)", key, type(last_exc).__name__)
                    return stale
                assert last_exc is not None
                raise last_exc

        wrapper.cache = cache  # type: ignore[attr-defined]
        return wrapper

    return decorator
