"""Tests for HealthCheckScheduler."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from cinedub.infrastructure.health.scheduler import HealthCheckScheduler
from cinedub.infrastructure.providers.registry import StreamProviderRegistry


class TestRunOnce:
    async def test_updates_provider_health(self, make_provider) -> None:
        ok = make_provider(name="ok", priority=1)
        down = make_provider(name="down", priority=2, error=RuntimeError("x"))
        scheduler = HealthCheckScheduler(StreamProviderRegistry([ok, down]))

        results = await scheduler.run_once()

        assert results["ok"].is_online is True
        assert results["down"].is_online is False
        assert down.health.is_online is False


class TestRunForever:
    async def test_runs_repeatedly_and_cancels_cleanly(self) -> None:
        registry = MagicMock()
        registry.check_all_health = AsyncMock(return_value={})
        scheduler = HealthCheckScheduler(
            registry, interval_seconds=0.01, initial_delay_seconds=0
        )

        task = asyncio.create_task(scheduler.run_forever())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert registry.check_all_health.await_count >= 2

    async def test_tick_error_does_not_stop_loop(self) -> None:
        registry = MagicMock()
        registry.check_all_health = AsyncMock(side_effect=RuntimeError("boom"))
        scheduler = HealthCheckScheduler(
            registry, interval_seconds=0.01, initial_delay_seconds=0
        )

        task = asyncio.create_task(scheduler.run_forever())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert registry.check_all_health.await_count >= 2
