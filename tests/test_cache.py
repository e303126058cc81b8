"""Tests for the TTL metadata cache."""

import pytest

from exotel_mcp.vendor.cache import CacheEntry, MetadataCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance_minutes(self, minutes: float) -> None:
        self.now += minutes * 60


def counting_supplier(value: str = "v"):
    calls = []

    async def supplier() -> str:
        calls.append(1)
        return f"{value}{len(calls)}"

    return supplier, calls


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.mark.asyncio
async def test_hit_within_ttl_does_not_call_supplier(clock):
    cache = MetadataCache(clock=clock)
    supplier, calls = counting_supplier()

    assert await cache.get("k", supplier, 15) == "v1"
    clock.advance_minutes(14)
    assert await cache.get("k", supplier, 15) == "v1"
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_expired_entry_is_refetched(clock):
    cache = MetadataCache(clock=clock)
    supplier, calls = counting_supplier()

    await cache.get("k", supplier, 15)
    clock.advance_minutes(15)
    assert await cache.get("k", supplier, 15) == "v2"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_supplier_error_is_not_cached(clock):
    cache = MetadataCache(clock=clock)

    async def failing() -> str:
        raise RuntimeError("vendor down")

    with pytest.raises(RuntimeError):
        await cache.get("k", failing, 15)
    assert "k" not in cache
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_sweep_runs_past_threshold(clock):
    cache = MetadataCache(sweep_threshold=3, clock=clock)
    supplier, _ = counting_supplier()

    for key in ("a", "b", "c"):
        await cache.get(key, supplier, 1)
    assert len(cache) == 3
    clock.advance_minutes(2)
    await cache.get("d", supplier, 15)

    assert len(cache) == 1
    assert "d" in cache


@pytest.mark.asyncio
async def test_lru_eviction_past_capacity(clock):
    cache = MetadataCache(sweep_threshold=100, max_entries=2, clock=clock)
    supplier, _ = counting_supplier()

    await cache.get("a", supplier, 15)
    await cache.get("b", supplier, 15)
    await cache.get("a", supplier, 15)  # touch a, b becomes least recent
    await cache.get("c", supplier, 15)

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache


@pytest.mark.asyncio
async def test_invalidate_and_clear(clock):
    cache = MetadataCache(clock=clock)
    supplier, calls = counting_supplier()

    await cache.get("k", supplier, 15)
    cache.invalidate("k")
    await cache.get("k", supplier, 15)
    assert len(calls) == 2

    cache.clear()
    assert len(cache) == 0


def test_entry_expires_at_boundary():
    entry = CacheEntry("v", expires_at=10.0)

    assert not entry.is_expired(9.999)
    assert entry.is_expired(10.0)
