"""Background health-check scheduler for stream providers."""

from __future__ import annotations

import asyncio

import structlog

from cinedub.domain.entities.stream import ProviderHealth
from cinedub.infrastructure.providers.registry import StreamProviderRegistry

log = structlog.get_logger(__name__)


class HealthCheckScheduler:
    """Runs ``check_health`` on every provider at a fixed interval.

    Call :meth:`run_forever` as an asyncio task during app lifespan.
    Results only update provider health snapshots; resolution never
    waits on them.
    """

    def __init__(
        self,
        registry: StreamProviderRegistry,
        *,
        interval_seconds: float = 300.0,
        initial_delay_seconds: float = 10.0,
    ) -> None:
        self._registry = registry
        self._interval = interval_seconds
        self._initial_delay = initial_delay_seconds

    async def run_forever(self) -> None:
        """Main loop: check, sleep, repeat.  Exits cleanly on cancellation."""
        log.info("health_scheduler_started", interval_seconds=self._interval)
        try:
            await asyncio.sleep(self._initial_delay)
            while True:
                try:
                    await self.run_once()
                except Exception:
                    log.error("health_scheduler_tick_error", exc_info=True)
                await asyncio.sleep(self._interval)
        except asyncio.CancelledError:
            log.info("health_scheduler_cancelled")
            raise

    async def run_once(self) -> dict[str, ProviderHealth]:
        results = await self._registry.check_all_health()
        log.info(
            "health_cycle_done",
            checked=len(results),
            online=sum(1 for h in results.values() if h.is_online),
        )
        return results
