"""Tests for the single-flight refresh cache."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import FakeClock
from weather_ayah.cache import RefreshCache
from weather_ayah.models import Snapshot

HOUR = 60 * 60


class Reading(Snapshot):
    value: str


class GatedLoader:
    """Loader that blocks until released, counting its invocations."""

    def __init__(self, value: str = "v1", error: Exception = None):
        self.calls = 0
        self.gate = asyncio.Event()
        self._value = value
        self._error = error

    async def __call__(self) -> Reading:
        self.calls += 1
        await self.gate.wait()
        if self._error is not None:
            raise self._error
        return Reading(value=self._value)


class TestRefreshCache:
    def _make_cache(self, start=1000.0):
        clock = FakeClock(start)
        return RefreshCache(clock=clock), clock

    @pytest.mark.asyncio
    async def test_first_call_loads_and_stamps(self):
        cache, clock = self._make_cache(start=0.0)
        loader = AsyncMock(return_value=Reading(value="72"))

        snapshot = await cache.ensure("arlington,va,us", loader, HOUR)

        assert loader.await_count == 1
        assert snapshot.value == "72"
        assert snapshot.updated_at == 0
        assert snapshot.next_update == 3_600_000

    @pytest.mark.asyncio
    async def test_fresh_hit_returns_same_snapshot_without_loading(self):
        cache, clock = self._make_cache(start=0.0)
        loader = AsyncMock(return_value=Reading(value="72"))
        first = await cache.ensure("arlington,va,us", loader, HOUR)

        clock.advance(1000)  # t = 1,000,000 ms
        second = await cache.ensure("arlington,va,us", loader, HOUR)

        assert second is first
        assert loader.await_count == 1

    @pytest.mark.asyncio
    async def test_expiry_triggers_one_refresh(self):
        cache, clock = self._make_cache()
        loader = AsyncMock(side_effect=[Reading(value="old"), Reading(value="new")])
        await cache.ensure("k", loader, 60)

        clock.advance(60)  # now == next_update: no longer fresh
        refreshed = await cache.ensure("k", loader, 60)
        again = await cache.ensure("k", loader, 60)

        assert refreshed.value == "new"
        assert again is refreshed
        assert loader.await_count == 2

    @pytest.mark.asyncio
    async def test_ttl_is_exact(self):
        cache, clock = self._make_cache(start=1234.5)
        loader = AsyncMock(return_value=Reading(value="x"))

        snapshot = await cache.ensure("k", loader, 2 * HOUR)

        assert snapshot.updated_at == 1_234_500
        assert snapshot.next_update - snapshot.updated_at == 7_200_000

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_load(self):
        cache, _ = self._make_cache()
        loader = GatedLoader()

        tasks = [asyncio.create_task(cache.ensure("k", loader, 60)) for _ in range(10)]
        await asyncio.sleep(0)
        assert cache.is_refreshing("k")
        loader.gate.set()
        results = await asyncio.gather(*tasks)

        assert loader.calls == 1
        assert all(r is results[0] for r in results)
        assert not cache.is_refreshing("k")

    @pytest.mark.asyncio
    async def test_concurrent_failure_reaches_every_waiter(self):
        cache, _ = self._make_cache()
        loader = GatedLoader(error=RuntimeError("generator down"))

        tasks = [asyncio.create_task(cache.ensure("k", loader, 60)) for _ in range(5)]
        await asyncio.sleep(0)
        loader.gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert loader.calls == 1
        assert all(isinstance(r, RuntimeError) for r in results)
        assert all(r is results[0] for r in results)
        assert cache.peek("k") is None
        assert not cache.is_refreshing("k")

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_snapshot(self):
        cache, clock = self._make_cache()
        loader = AsyncMock(
            side_effect=[
                Reading(value="good"),
                RuntimeError("bad reply"),
                Reading(value="better"),
            ]
        )
        good = await cache.ensure("k", loader, 60)

        clock.advance(61)
        with pytest.raises(RuntimeError, match="bad reply"):
            await cache.ensure("k", loader, 60)
        assert cache.peek("k") is good

        # Next call retries instead of staying broken
        better = await cache.ensure("k", loader, 60)
        assert better.value == "better"
        assert loader.await_count == 3

    @pytest.mark.asyncio
    async def test_failure_on_cold_start_is_not_remembered(self):
        cache, _ = self._make_cache()
        loader = AsyncMock(side_effect=[ValueError("nope"), Reading(value="ok")])

        with pytest.raises(ValueError):
            await cache.ensure("k", loader, 60)
        snapshot = await cache.ensure("k", loader, 60)

        assert snapshot.value == "ok"
        assert loader.await_count == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_refresh(self):
        cache, _ = self._make_cache()
        loader = GatedLoader(value="done")

        quitter = asyncio.create_task(cache.ensure("k", loader, 60))
        stayer = asyncio.create_task(cache.ensure("k", loader, 60))
        await asyncio.sleep(0)
        quitter.cancel()
        await asyncio.sleep(0)
        loader.gate.set()
        result = await stayer

        assert quitter.cancelled()
        assert result.value == "done"
        assert cache.peek("k") is result
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        cache, clock = self._make_cache()
        loader_a = AsyncMock(return_value=Reading(value="a"))
        loader_b = AsyncMock(return_value=Reading(value="b"))

        await cache.ensure("a", loader_a, 20)
        clock.advance(10)
        await cache.ensure("b", loader_b, 20)
        clock.advance(15)
        # a is 25s old (expired), b is 15s old (fresh)
        await cache.ensure("a", loader_a, 20)
        await cache.ensure("b", loader_b, 20)

        assert loader_a.await_count == 2
        assert loader_b.await_count == 1

    @pytest.mark.asyncio
    async def test_clear_forces_reload(self):
        cache, _ = self._make_cache()
        loader = AsyncMock(return_value=Reading(value="x"))
        await cache.ensure("k", loader, 60)

        cache.clear()
        assert cache.peek("k") is None
        await cache.ensure("k", loader, 60)
        assert loader.await_count == 2

    def test_cold_start_empty(self):
        cache, _ = self._make_cache()
        assert cache.peek("nonexistent") is None
        assert not cache.is_refreshing("nonexistent")
