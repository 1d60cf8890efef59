"""Tests for TTL cache entries and request coalescing."""

import asyncio

import pytest

from mcp_blockchain_metadata.sources.cache import CacheEntry, SingleFlight, TTLCache


def test_cache_entry_expiry():
    """Test an entry expires exactly at created_at + ttl."""
    entry = CacheEntry("value", ttl=10, created_at=100.0)

    assert entry.expires_at == 110.0
    assert entry.is_expired(109.9) is False
    assert entry.is_expired(110.0) is True


def test_ttl_cache_get_and_set(clock):
    """Test values are served until their TTL elapses."""
    cache = TTLCache(default_ttl=60, clock=clock)
    cache.set("k", [1, 2])

    assert cache.get("k") == [1, 2]
    assert "k" in cache

    clock.advance(60)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_ttl_cache_per_key_ttl(clock):
    """Test an explicit TTL overrides the default."""
    cache = TTLCache(default_ttl=60, clock=clock)
    cache.set("short", 1, ttl=5)
    cache.set("long", 2)

    clock.advance(10)

    assert cache.get("short") is None
    assert cache.get("long") == 2


def test_ttl_cache_cleanup_expired(clock):
    """Test bulk removal of expired entries."""
    cache = TTLCache(default_ttl=60, clock=clock)
    cache.set("a", 1, ttl=5)
    cache.set("b", 2, ttl=5)
    cache.set("c", 3)

    clock.advance(6)

    assert cache.cleanup_expired() == 2
    assert len(cache) == 1


def test_ttl_cache_clear(clock):
    """Test clear drops every entry."""
    cache = TTLCache(default_ttl=60, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    cache.clear()
    assert len(cache) == 0


@pytest.mark.anyio("asyncio")
async def test_single_flight_coalesces_concurrent_calls():
    """Test concurrent callers for one key share a single run."""
    flight = SingleFlight()
    calls = 0
    release = asyncio.Event()

    async def work() -> str:
        nonlocal calls
        calls += 1
        await release.wait()
        return "done"

    waiters = [asyncio.ensure_future(flight.do("k", work)) for _ in range(5)]
    await asyncio.sleep(0)
    assert flight.in_flight("k")

    release.set()
    results = await asyncio.gather(*waiters)

    assert results == ["done"] * 5
    assert calls == 1
    assert not flight.in_flight("k")


@pytest.mark.anyio("asyncio")
async def test_single_flight_distinct_keys_run_separately():
    """Test different keys do not share work."""
    flight = SingleFlight()
    calls: list[str] = []

    async def work(key: str) -> str:
        calls.append(key)
        await asyncio.sleep(0)
        return key

    results = await asyncio.gather(flight.do("a", lambda: work("a")), flight.do("b", lambda: work("b")))

    assert results == ["a", "b"]
    assert sorted(calls) == ["a", "b"]


@pytest.mark.anyio("asyncio")
async def test_single_flight_propagates_errors_to_all_waiters():
    """Test a failed run raises in every waiter and is not remembered."""
    flight = SingleFlight()
    calls = 0

    async def failing() -> None:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0)
        raise RuntimeError("upstream down")

    results = await asyncio.gather(flight.do("k", failing), flight.do("k", failing), return_exceptions=True)

    assert calls == 1
    assert all(isinstance(result, RuntimeError) for result in results)

    with pytest.raises(RuntimeError):
        await flight.do("k", failing)
    assert calls == 2
