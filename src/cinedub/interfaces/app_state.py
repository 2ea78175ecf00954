"""Typed view of ``app.state`` shared by the routers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from cinedub.infrastructure.config import AppConfig

if TYPE_CHECKING:
    import asyncio

    from cinedub.infrastructure.health.scheduler import HealthCheckScheduler
    from cinedub.infrastructure.providers.registry import StreamProviderRegistry


class AppState(State):
    """Everything a request handler may reach through ``request.app.state``.

    ``config`` is set by ``build_app``; the rest is filled in and torn
    down by ``composition.lifespan``.
    """

    config: AppConfig

    # Shared by every provider
    http_client: httpx.AsyncClient

    # Stream resolution (providers + cache + circuit breaker)
    registry: StreamProviderRegistry

    # Periodic provider health checks (only when health.enabled)
    health_scheduler: HealthCheckScheduler | None
    _health_task: asyncio.Task | None
