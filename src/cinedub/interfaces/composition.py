"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from cinedub.infrastructure.circuit_breaker import ProviderCircuitBreaker
from cinedub.infrastructure.config.schema import AppConfig
from cinedub.infrastructure.health.scheduler import HealthCheckScheduler
from cinedub.infrastructure.providers import (
    DubAddonResolver,
    DubbedStreamProvider,
    StreamProviderRegistry,
    SubtitledEmbedProvider,
)
from cinedub.infrastructure.stream_cache import StreamCache
from cinedub.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def build_registry(
    config: AppConfig, http_client: httpx.AsyncClient
) -> StreamProviderRegistry:
    """Create the registry and its providers from configuration."""
    registry = StreamProviderRegistry(
        cache=StreamCache(
            ttl_seconds=config.resolution.cache_ttl_seconds,
            max_entries=config.resolution.cache_max_entries,
        ),
        circuit_breaker=ProviderCircuitBreaker(
            failure_threshold=config.circuit_breaker.failure_threshold,
            cooldown_seconds=config.circuit_breaker.cooldown_seconds,
        ),
        attempt_deadline_seconds=config.resolution.attempt_deadline_seconds,
    )

    health_timeout = config.health.timeout_seconds

    registry.register_provider(
        SubtitledEmbedProvider(
            http_client,
            priority=config.embed.priority,
            movie_sources=config.embed.movie_sources,
            series_sources=config.embed.series_sources,
            imdb_fallback_sources=config.embed.imdb_fallback_sources,
            strict_status=config.embed.strict_status,
            health_timeout=health_timeout,
        )
    )

    dubbed = DubbedStreamProvider(
        http_client,
        priority=config.dubbed.priority,
        health_timeout=health_timeout,
    )
    registry.register_provider(dubbed)
    if config.dubbed.is_configured:
        dubbed.configure(
            hls=config.dubbed.hls,
            dash=config.dubbed.dash,
            api=config.dubbed.api,
        )

    if config.addons.enabled:
        registry.register_provider(
            DubAddonResolver(
                http_client,
                priority=config.addons.priority,
                primary_url=config.addons.primary_url,
                fallback_url=config.addons.fallback_url,
                language_markers=config.addons.language_markers,
                health_timeout=health_timeout,
            )
        )

    return registry


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan hook: initialize and clean up all resources.

    Order matters:
        1. HTTP client (shared by every provider)
        2. Provider registry (providers, cache, circuit breaker)
        3. Health-check scheduler task
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) HTTP client
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        follow_redirects=config.http_follow_redirects,
        headers={"User-Agent": config.http_user_agent},
    )
    log.info("http_client_initialized")

    # 2) Registry
    state.registry = build_registry(config, state.http_client)
    log.info(
        "registry_initialized",
        providers=[p.name for p in state.registry.providers],
    )

    # 3) Health checks
    state.health_scheduler = None
    state._health_task = None
    if config.health.enabled:
        state.health_scheduler = HealthCheckScheduler(
            state.registry,
            interval_seconds=config.health.interval_seconds,
            initial_delay_seconds=config.health.initial_delay_seconds,
        )
        state._health_task = asyncio.create_task(
            state.health_scheduler.run_forever()
        )

    try:
        yield
    finally:
        if state._health_task is not None:
            state._health_task.cancel()
            with suppress(asyncio.CancelledError):
                await state._health_task
        await state.http_client.aclose()
        log.info("app_shutdown")
