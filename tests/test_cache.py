"""Tests for the conversion cache."""

import asyncio

import pytest

from image_gateway.cache import ConversionCache
from image_gateway.types import CacheKey


@pytest.mark.asyncio
async def test_set_then_get_is_a_hit(cache: ConversionCache):
    key = CacheKey("lvl1.webp", "png")
    await cache.set(key, b"converted", ttl=2700)

    assert await cache.get(key) == b"converted"

    stats = await cache.stats()
    assert stats.hits == 1
    assert stats.misses == 0


@pytest.mark.asyncio
async def test_get_on_empty_cache_is_a_miss(cache: ConversionCache):
    assert await cache.get(CacheKey("unknown", "png")) is None

    stats = await cache.stats()
    assert stats.hits == 0
    assert stats.misses == 1


@pytest.mark.asyncio
async def test_entry_expires_exactly_at_ttl(cache: ConversionCache, clock):
    key = CacheKey("a.webp", "png")
    await cache.set(key, b"value", ttl=10)

    clock.advance(9)
    assert await cache.get(key) == b"value"

    clock.advance(1)
    assert await cache.get(key) is None


@pytest.mark.asyncio
async def test_expired_entry_is_purged_on_read(cache: ConversionCache, clock):
    key = CacheKey("a.webp", "png")
    await cache.set(key, b"value", ttl=1)
    clock.advance(1.5)

    assert await cache.get(key) is None
    assert cache.cache == {}

    stats = await cache.stats()
    assert stats.misses == 1
    assert stats.keys == 0


@pytest.mark.asyncio
async def test_default_ttl_is_used_when_omitted(clock):
    cache = ConversionCache(default_ttl=5, clock=clock)
    key = CacheKey("a.webp", "png")
    await cache.set(key, b"value")

    clock.advance(4)
    assert await cache.get(key) == b"value"
    clock.advance(1)
    assert await cache.get(key) is None


@pytest.mark.asyncio
async def test_every_get_counts_exactly_once(cache: ConversionCache, clock):
    await cache.set(CacheKey("a", "png"), b"a", ttl=5)
    await cache.set(CacheKey("b", "png"), b"b", ttl=60)

    lookups = [
        CacheKey("a", "png"),
        CacheKey("b", "png"),
        CacheKey("c", "png"),
        CacheKey("a", "webp"),
    ]
    for key in lookups:
        await cache.get(key)
    clock.advance(10)
    for key in lookups:
        await cache.get(key)

    stats = await cache.stats()
    assert stats.hits + stats.misses == 8
    assert stats.hits == 3
    assert stats.misses == 5


@pytest.mark.asyncio
async def test_invalidate_removes_every_format_of_an_object(cache: ConversionCache):
    await cache.set(CacheKey("obj1", "png"), b"png", ttl=60)
    await cache.set(CacheKey("obj1", "webp"), b"webp", ttl=60)
    await cache.set(CacheKey("obj2", "png"), b"other", ttl=60)

    removed = await cache.invalidate("obj1")

    assert removed == 2
    assert await cache.get(CacheKey("obj1", "png")) is None
    assert await cache.get(CacheKey("obj1", "webp")) is None
    assert await cache.get(CacheKey("obj2", "png")) == b"other"


@pytest.mark.asyncio
async def test_invalidate_unknown_object_is_a_no_op(cache: ConversionCache):
    assert await cache.invalidate("missing") == 0


@pytest.mark.asyncio
async def test_set_overwrites_existing_entry(cache: ConversionCache):
    key = CacheKey("a", "png")
    await cache.set(key, b"first", ttl=60)
    await cache.set(key, b"second", ttl=60)

    assert await cache.get(key) == b"second"
    assert (await cache.stats()).keys == 1


@pytest.mark.asyncio
async def test_overwrite_restarts_the_ttl(cache: ConversionCache, clock):
    key = CacheKey("a", "png")
    await cache.set(key, b"first", ttl=10)
    clock.advance(8)
    await cache.set(key, b"second", ttl=10)
    clock.advance(8)

    assert await cache.get(key) == b"second"


@pytest.mark.asyncio
async def test_empty_bytes_are_cacheable(cache: ConversionCache):
    key = CacheKey("empty", "png")
    await cache.set(key, b"", ttl=60)

    assert await cache.get(key) == b""
    assert (await cache.stats()).hits == 1


@pytest.mark.asyncio
async def test_stored_value_is_detached_from_caller_buffer(cache: ConversionCache):
    key = CacheKey("a", "png")
    buffer = bytearray(b"abc")
    await cache.set(key, buffer, ttl=60)
    buffer[0] = ord("z")

    assert await cache.get(key) == b"abc"


@pytest.mark.asyncio
async def test_clear_keeps_counters(cache: ConversionCache):
    key = CacheKey("a", "png")
    await cache.set(key, b"value", ttl=60)
    await cache.get(key)
    await cache.get(CacheKey("b", "png"))

    await cache.clear()

    assert await cache.get(key) is None
    stats = await cache.stats()
    assert stats.keys == 0
    assert stats.hits == 1
    assert stats.misses == 2


@pytest.mark.asyncio
async def test_stats_counts_only_unexpired_entries(cache: ConversionCache, clock):
    await cache.set(CacheKey("a", "png"), b"a", ttl=5)
    await cache.set(CacheKey("a", "webp"), b"a", ttl=60)
    await cache.set(CacheKey("b", "png"), b"b", ttl=60)

    assert (await cache.stats()).keys == 3
    clock.advance(5)
    assert (await cache.stats()).keys == 2


@pytest.mark.asyncio
async def test_hit_rate(cache: ConversionCache):
    assert (await cache.stats()).hit_rate == 0.0

    key = CacheKey("a", "png")
    await cache.set(key, b"value", ttl=60)
    await cache.get(key)
    await cache.get(key)
    await cache.get(CacheKey("b", "png"))

    assert (await cache.stats()).hit_rate == pytest.approx(2 / 3)


@pytest.mark.asyncio
@pytest.mark.parametrize("ttl", [0, -1])
async def test_non_positive_ttl_is_rejected(cache: ConversionCache, ttl):
    with pytest.raises(ValueError, match="ttl must be positive"):
        await cache.set(CacheKey("a", "png"), b"value", ttl=ttl)


@pytest.mark.asyncio
@pytest.mark.parametrize("key", [CacheKey("", "png"), CacheKey("a", "")])
async def test_empty_key_component_is_rejected(cache: ConversionCache, key):
    with pytest.raises(ValueError, match="non-empty"):
        await cache.set(key, b"value", ttl=60)


@pytest.mark.asyncio
async def test_none_value_is_rejected(cache: ConversionCache):
    with pytest.raises(ValueError):
        await cache.set(CacheKey("a", "png"), None, ttl=60)


def test_non_positive_default_ttl_is_rejected():
    with pytest.raises(ValueError):
        ConversionCache(default_ttl=0)


@pytest.mark.asyncio
async def test_cleanup_purges_only_expired(cache: ConversionCache, clock):
    await cache.set(CacheKey("a", "png"), b"a", ttl=1)
    await cache.set(CacheKey("a", "webp"), b"a", ttl=60)
    await cache.set(CacheKey("b", "png"), b"b", ttl=1)
    clock.advance(2)

    assert await cache.cleanup() == 2
    assert set(cache.cache) == {"a"}
    assert set(cache.cache["a"]) == {"webp"}
    # cleanup does not touch the counters
    stats = await cache.stats()
    assert stats.hits == 0
    assert stats.misses == 0


@pytest.mark.asyncio
async def test_cleanup_task_runs_periodically():
    cache = ConversionCache(default_ttl=60, cleanup_interval=0.01)
    await cache.set(CacheKey("a", "png"), b"a", ttl=0.01)

    cache.start_cleanup()
    await asyncio.sleep(0.1)
    await cache.stop_cleanup()

    assert cache.cache == {}


@pytest.mark.asyncio
async def test_start_cleanup_twice_keeps_one_task(cache: ConversionCache):
    cache.start_cleanup()
    task = cache._cleanup_task
    cache.start_cleanup()

    assert cache._cleanup_task is task
    await cache.stop_cleanup()
    assert cache._cleanup_task is None


@pytest.mark.asyncio
async def test_stop_cleanup_when_not_running(cache: ConversionCache):
    await cache.stop_cleanup()
    assert cache._cleanup_task is None


@pytest.mark.asyncio
async def test_stop_cleanup_waits_for_task(cache: ConversionCache):
    cache.start_cleanup()
    task = cache._cleanup_task

    await cache.stop_cleanup()

    assert task.done()
    assert task.cancelled()


@pytest.mark.asyncio
async def test_failed_sweep_keeps_cleanup_running(monkeypatch, caplog):
    cache = ConversionCache(default_ttl=60, cleanup_interval=0.01)
    calls = 0

    async def flaky_cleanup() -> int:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("boom")
        return 0

    monkeypatch.setattr(cache, "cleanup", flaky_cleanup)

    cache.start_cleanup()
    await asyncio.sleep(0.1)
    task = cache._cleanup_task
    assert not task.done()
    await cache.stop_cleanup()

    assert calls > 1
    assert "Conversion cache sweep failed" in caplog.text


@pytest.mark.asyncio
async def test_concurrent_writers_and_readers(cache: ConversionCache):
    writers = 50
    readers = 200
    keys = [CacheKey(f"obj{i}", "png" if i % 2 else "webp") for i in range(writers)]

    async def write(key: CacheKey) -> None:
        await asyncio.sleep(0)
        await cache.set(key, f"{key.object_id}/{key.fmt}".encode(), ttl=60)

    async def read(i: int):
        await asyncio.sleep(0)
        key = keys[i % writers]
        return key, await cache.get(key)

    results = await asyncio.gather(
        *(write(k) for k in keys), *(read(i) for i in range(readers))
    )

    for result in results[writers:]:
        key, value = result
        assert value is None or value == f"{key.object_id}/{key.fmt}".encode()

    stats = await cache.stats()
    assert stats.hits + stats.misses == readers
    assert stats.keys == writers
    for key in keys:
        assert await cache.get(key) == f"{key.object_id}/{key.fmt}".encode()
