import pytest

from shared.cache import AsyncTTLCache, cached


class Loader:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self, name: str) -> str:
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def wrap(loader: Loader, cache: AsyncTTLCache, retry: int = 2):
    return cached(cache, key_func=lambda name: f"row:{name}", retry=retry, retry_delay=0)(loader)


async def test_serves_fresh_value_without_reloading():
    loader = Loader("v1", "v2")
    get = wrap(loader, AsyncTTLCache())

    assert await get("a") == "v1"
    assert await get("a") == "v1"
    assert loader.calls == 1


async def test_invalidate_forces_reload():
    cache = AsyncTTLCache()
    loader = Loader("v1", "v2")
    get = wrap(loader, cache)

    await get("a")
    cache.invalidate("row:a")

    assert await get("a") == "v2"
    assert cache.size == 1


async def test_retries_then_succeeds():
    loader = Loader(ConnectionError("down"), "v1")
    get = wrap(loader, AsyncTTLCache())

    assert await get("a") == "v1"
    assert loader.calls == 2


async def test_falls_back_to_stale_value():
    cache = AsyncTTLCache()
    loader = Loader("v1", ConnectionError("down"), ConnectionError("down"))
    get = wrap(loader, cache)

    await get("a")
    cache.invalidate("row:a")

    assert await get("a") == "v1"
    assert cache.get_stale("row:a") == "v1"


async def test_raises_without_stale_value():
    loader = Loader(ConnectionError("down"), ConnectionError("still down"))
    get = wrap(loader, AsyncTTLCache())

    with pytest.raises(ConnectionError, match="still down"):
        await get("a")


async def test_caches_none():
    loader = Loader(None, "later")
    get = wrap(loader, AsyncTTLCache())

    assert await get("a") is None
    assert await get("a") is None
    assert loader.calls == 1
