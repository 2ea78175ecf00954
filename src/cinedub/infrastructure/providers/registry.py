"""Registry that orchestrates stream resolution across providers."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from cinedub.domain.entities.language import matches_language_preference
from cinedub.domain.entities.stream import (
    ProviderHealth,
    Stream,
    StreamOptions,
    StreamRequest,
)
from cinedub.domain.exceptions import (
    ProviderError,
    ProviderNotFoundError,
    StreamValidationError,
)
from cinedub.domain.ports.stream_provider import StreamProviderPort
from cinedub.infrastructure.circuit_breaker import ProviderCircuitBreaker
from cinedub.infrastructure.stream_cache import StreamCache, build_cache_key

log = structlog.get_logger(__name__)

DUBBED_PROVIDER_NAME = "DubladoProvider"


class StreamProviderRegistry:
    """Owns the providers, the result cache and the circuit breaker.

    Providers are attempted one at a time in ascending priority order;
    the first stream that satisfies the language preference wins and is
    cached.  Construct once at process start and share it.
    """

    def __init__(
        self,
        providers: list[StreamProviderPort] | None = None,
        *,
        cache: StreamCache | None = None,
        circuit_breaker: ProviderCircuitBreaker | None = None,
        attempt_deadline_seconds: float | None = None,
    ) -> None:
        self._providers: dict[str, StreamProviderPort] = {}
        self._cache = cache if cache is not None else StreamCache()
        self._breaker = (
            circuit_breaker if circuit_breaker is not None else ProviderCircuitBreaker()
        )
        self._attempt_deadline = attempt_deadline_seconds
        for provider in providers or []:
            self.register_provider(provider)

    # ------------------------------------------------------------------
    # Provider management
    # ------------------------------------------------------------------

    def register_provider(self, provider: StreamProviderPort) -> None:
        """Add *provider*, replacing any provider with the same name."""
        replaced = provider.name in self._providers
        self._providers[provider.name] = provider
        log.info(
            "provider_registered",
            provider=provider.name,
            priority=provider.priority,
            replaced=replaced,
        )

    def unregister_provider(self, name: str) -> bool:
        if self._providers.pop(name, None) is None:
            return False
        log.info("provider_unregistered", provider=name)
        return True

    def get_provider(self, name: str) -> StreamProviderPort:
        try:
            return self._providers[name]
        except KeyError:
            raise ProviderNotFoundError(f"provider not registered: {name}") from None

    @property
    def providers(self) -> list[StreamProviderPort]:
        """Registered providers in attempt order."""
        return sorted(self._providers.values(), key=lambda p: p.priority)

    def configure_dubbed_provider(
        self,
        *,
        hls: str | None = None,
        dash: str | None = None,
        api: str | None = None,
    ) -> bool:
        """Forward endpoint templates to the registered dubbed provider."""
        provider = self._providers.get(DUBBED_PROVIDER_NAME)
        configure = getattr(provider, "configure", None)
        if configure is None:
            log.error("dubbed_provider_not_found", provider=DUBBED_PROVIDER_NAME)
            return False
        configure(hls=hls, dash=dash, api=api)
        return True

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve_stream(
        self,
        request: StreamRequest,
        options: StreamOptions | None = None,
    ) -> Stream | None:
        """Resolve *request* to a stream, or None when no source has one.

        1. Validate the request (raises StreamValidationError).
        2. Return a fresh cached stream if caching is enabled.
        3. Try supporting providers by ascending priority, skipping
           providers whose breaker is open.
        4. Accept the first stream matching the language preference,
           cache it and reset that provider's breaker.
        """
        options = options or StreamOptions()
        request.validate()

        preference = options.language_preference
        cache_key = build_cache_key(request, preference)
        if options.enable_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                log.debug("stream_cache_hit", key=cache_key)
                return cached

        candidates = [p for p in self.providers if p.supports(request)]
        log.debug("providers_selected", providers=[p.name for p in candidates])

        for provider in candidates:
            if not self._breaker.allow(provider.name):
                log.info("provider_skipped_circuit_open", provider=provider.name)
                continue

            stream = await self._attempt(provider, request, options)
            if stream is None:
                continue

            if not matches_language_preference(stream, preference):
                log.info(
                    "provider_stream_language_mismatch",
                    provider=provider.name,
                    preference=preference,
                )
                continue

            self._breaker.record_success(provider.name)
            if options.enable_cache:
                self._cache.put(cache_key, stream)
            log.info(
                "stream_resolved",
                provider=provider.name,
                format=stream.format,
                is_dubbed=stream.is_dubbed,
            )
            return stream

        log.info("stream_not_found", key=cache_key)
        return None

    async def _attempt(
        self,
        provider: StreamProviderPort,
        request: StreamRequest,
        options: StreamOptions,
    ) -> Stream | None:
        """Run one provider, turning failures into breaker records."""
        log.debug("provider_attempt", provider=provider.name)
        try:
            if self._attempt_deadline is not None:
                return await asyncio.wait_for(
                    provider.get_stream(request, options),
                    timeout=self._attempt_deadline,
                )
            return await provider.get_stream(request, options)
        except StreamValidationError:
            raise
        except (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException):
            log.warning("provider_timeout", provider=provider.name)
        except (ProviderError, httpx.HTTPError) as exc:
            log.warning("provider_failed", provider=provider.name, error=str(exc))
        except Exception:
            log.exception("provider_error", provider=provider.name)
        self._breaker.record_failure(provider.name)
        return None

    # ------------------------------------------------------------------
    # Health & diagnostics
    # ------------------------------------------------------------------

    async def check_all_health(self) -> dict[str, ProviderHealth]:
        """Probe every registered provider concurrently."""
        providers = list(self._providers.values())
        results = await asyncio.gather(
            *(p.check_health() for p in providers), return_exceptions=True
        )
        health: dict[str, ProviderHealth] = {}
        for provider, result in zip(providers, results):
            if isinstance(result, BaseException):
                log.warning(
                    "health_check_failed", provider=provider.name, error=str(result)
                )
                continue
            health[provider.name] = result
        return health

    def get_providers_status(self) -> dict[str, dict[str, Any]]:
        """Per-provider priority, last health snapshot and breaker state."""
        status: dict[str, dict[str, Any]] = {}
        for provider in self.providers:
            health = provider.health
            status[provider.name] = {
                "priority": provider.priority,
                "health": {
                    "is_online": health.is_online,
                    "latency_ms": round(health.latency_ms, 1),
                    "last_check_at": (
                        health.last_check_at.isoformat()
                        if health.last_check_at
                        else None
                    ),
                },
                "circuit_breaker": self._breaker.describe(provider.name),
            }
        return status

    def clear_cache(self, pattern: str | None = None) -> int:
        return self._cache.clear(pattern)
