"""Tests for StreamProviderRegistry."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from cinedub.domain.entities.stream import (
    AudioTrack,
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
from cinedub.infrastructure.circuit_breaker import ProviderCircuitBreaker
from cinedub.infrastructure.providers.dubbed_stream import DubbedStreamProvider
from cinedub.infrastructure.providers.registry import StreamProviderRegistry
from cinedub.infrastructure.stream_cache import StreamCache


class _SlowProvider:
    name = "slow"
    priority = 1
    health = ProviderHealth(name="slow", priority=1)

    def supports(self, request: StreamRequest) -> bool:
        return True

    async def get_stream(
        self, request: StreamRequest, options: StreamOptions
    ) -> Stream | None:
        await asyncio.sleep(10)
        return None

    async def check_health(self) -> ProviderHealth:
        raise RuntimeError("health endpoint down")


class TestProviderManagement:
    def test_providers_sorted_by_priority(self, make_provider) -> None:
        registry = StreamProviderRegistry(
            [
                make_provider(name="embed", priority=100),
                make_provider(name="dub", priority=10),
                make_provider(name="addon", priority=50),
            ]
        )
        assert [p.name for p in registry.providers] == ["dub", "addon", "embed"]

    def test_register_replaces_same_name(self, make_provider) -> None:
        registry = StreamProviderRegistry([make_provider(name="a", priority=5)])
        replacement = make_provider(name="a", priority=7)
        registry.register_provider(replacement)
        assert registry.providers == [replacement]

    def test_unregister(self, make_provider) -> None:
        registry = StreamProviderRegistry([make_provider(name="a")])
        assert registry.unregister_provider("a") is True
        assert registry.unregister_provider("a") is False
        assert registry.providers == []

    def test_get_provider(self, make_provider) -> None:
        provider = make_provider(name="a")
        registry = StreamProviderRegistry([provider])
        assert registry.get_provider("a") is provider
        with pytest.raises(ProviderNotFoundError):
            registry.get_provider("missing")

    async def test_configure_dubbed_provider(self) -> None:
        async with httpx.AsyncClient() as client:
            dubbed = DubbedStreamProvider(client)
            registry = StreamProviderRegistry([dubbed])
            assert registry.configure_dubbed_provider(hls="https://cdn/{id}.m3u8")
            assert dubbed.is_enabled is True
            assert dubbed.endpoints == {"hls": "https://cdn/{id}.m3u8"}

    def test_configure_dubbed_provider_missing(self, make_provider) -> None:
        registry = StreamProviderRegistry([make_provider(name="other")])
        assert registry.configure_dubbed_provider(api="https://api/{id}") is False


class TestValidation:
    async def test_invalid_request_raises_before_providers(self, make_provider) -> None:
        provider = make_provider(
            result=Stream(url="u", format="embed", source_name="fake")
        )
        registry = StreamProviderRegistry([provider])
        with pytest.raises(StreamValidationError):
            await registry.resolve_stream(StreamRequest(content_type="movie"))
        assert provider.calls == []

    async def test_series_without_episode_raises(self, make_provider) -> None:
        provider = make_provider()
        registry = StreamProviderRegistry([provider])
        req = StreamRequest(content_type="series", imdb_id="tt1", season=1)
        with pytest.raises(StreamValidationError):
            await registry.resolve_stream(req)
        assert provider.calls == []


class TestResolution:
    async def test_lower_priority_value_wins(
        self, make_provider, movie_request, dubbed_stream, embed_stream
    ) -> None:
        dub = make_provider(name="DubladoProvider", priority=10, result=dubbed_stream)
        embed = make_provider(name="LegendadoEmbed", priority=100, result=embed_stream)
        registry = StreamProviderRegistry([embed, dub])

        stream = await registry.resolve_stream(movie_request)

        assert stream is dubbed_stream
        assert embed.calls == []

    async def test_falls_through_to_next_provider(
        self, make_provider, movie_request, embed_stream
    ) -> None:
        dub = make_provider(name="dub", priority=10, result=None)
        embed = make_provider(name="embed", priority=100, result=embed_stream)
        registry = StreamProviderRegistry([dub, embed])

        assert await registry.resolve_stream(movie_request) is embed_stream
        assert len(dub.calls) == 1

    async def test_unsupported_provider_not_called(
        self, make_provider, movie_request, embed_stream
    ) -> None:
        skipped = make_provider(name="a", priority=1, supported=False)
        used = make_provider(name="b", priority=2, result=embed_stream)
        registry = StreamProviderRegistry([skipped, used])

        assert await registry.resolve_stream(movie_request) is embed_stream
        assert skipped.calls == []

    async def test_none_when_all_exhausted(self, make_provider, movie_request) -> None:
        registry = StreamProviderRegistry(
            [
                make_provider(name="a", priority=1),
                make_provider(name="b", priority=2, error=ProviderError("b", "down")),
            ]
        )
        assert await registry.resolve_stream(movie_request) is None

    async def test_none_without_providers(self, movie_request) -> None:
        assert await StreamProviderRegistry().resolve_stream(movie_request) is None

    async def test_error_in_one_provider_does_not_stop_others(
        self, make_provider, movie_request, embed_stream
    ) -> None:
        broken = make_provider(name="a", priority=1, error=RuntimeError("boom"))
        ok = make_provider(name="b", priority=2, result=embed_stream)
        registry = StreamProviderRegistry([broken, ok])

        assert await registry.resolve_stream(movie_request) is embed_stream

    async def test_provider_validation_error_propagates(
        self, make_provider, movie_request
    ) -> None:
        registry = StreamProviderRegistry(
            [make_provider(error=StreamValidationError("bad id"))]
        )
        with pytest.raises(StreamValidationError):
            await registry.resolve_stream(movie_request)

    async def test_attempt_deadline_counts_as_failure(
        self, make_provider, movie_request, embed_stream
    ) -> None:
        breaker = ProviderCircuitBreaker()
        registry = StreamProviderRegistry(
            [_SlowProvider(), make_provider(name="b", priority=2, result=embed_stream)],
            circuit_breaker=breaker,
            attempt_deadline_seconds=0.01,
        )

        assert await registry.resolve_stream(movie_request) is embed_stream
        assert breaker.failure_count("slow") == 1


class TestLanguagePreference:
    async def test_pt_br_skips_undubbed_stream(
        self, make_provider, movie_request, embed_stream, dubbed_stream
    ) -> None:
        embed = make_provider(name="embed", priority=1, result=embed_stream)
        dub = make_provider(name="dub", priority=2, result=dubbed_stream)
        registry = StreamProviderRegistry([embed, dub])

        stream = await registry.resolve_stream(
            movie_request, StreamOptions(language_preference="pt-BR")
        )
        assert stream is dubbed_stream

    async def test_pt_br_accepts_portuguese_track(
        self, make_provider, movie_request
    ) -> None:
        stream = Stream(
            url="https://cdn/x.m3u8",
            format="hls",
            source_name="x",
            is_dubbed=False,
            audio_tracks=(AudioTrack(id=0, lang="en"), AudioTrack(id=1, lang="por")),
        )
        registry = StreamProviderRegistry([make_provider(result=stream)])
        result = await registry.resolve_stream(
            movie_request, StreamOptions(language_preference="pt-BR")
        )
        assert result is stream

    async def test_pt_br_only_undubbed_returns_none(
        self, make_provider, movie_request, embed_stream
    ) -> None:
        registry = StreamProviderRegistry([make_provider(result=embed_stream)])
        result = await registry.resolve_stream(
            movie_request, StreamOptions(language_preference="pt-BR")
        )
        assert result is None

    async def test_original_accepts_undubbed(
        self, make_provider, movie_request, embed_stream
    ) -> None:
        registry = StreamProviderRegistry([make_provider(result=embed_stream)])
        assert await registry.resolve_stream(movie_request) is embed_stream


class TestCaching:
    async def test_second_call_served_from_cache(
        self, make_provider, movie_request, embed_stream
    ) -> None:
        provider = make_provider(result=embed_stream)
        registry = StreamProviderRegistry([provider])

        first = await registry.resolve_stream(movie_request)
        second = await registry.resolve_stream(movie_request)

        assert first == second
        assert len(provider.calls) == 1

    async def test_cache_disabled_calls_provider_each_time(
        self, make_provider, movie_request, embed_stream
    ) -> None:
        provider = make_provider(result=embed_stream)
        registry = StreamProviderRegistry([provider])
        opts = StreamOptions(enable_cache=False)

        await registry.resolve_stream(movie_request, opts)
        await registry.resolve_stream(movie_request, opts)

        assert len(provider.calls) == 2

    async def test_cache_expires_after_ttl(
        self, make_provider, movie_request, embed_stream, clock
    ) -> None:
        provider = make_provider(result=embed_stream)
        registry = StreamProviderRegistry([provider], cache=StreamCache(clock=clock))

        await registry.resolve_stream(movie_request)
        clock.advance(1801)
        await registry.resolve_stream(movie_request)

        assert len(provider.calls) == 2

    async def test_cache_keyed_by_preference(
        self, make_provider, movie_request, dubbed_stream
    ) -> None:
        provider = make_provider(result=dubbed_stream)
        registry = StreamProviderRegistry([provider])

        await registry.resolve_stream(movie_request)
        await registry.resolve_stream(
            movie_request, StreamOptions(language_preference="pt-BR")
        )

        assert len(provider.calls) == 2

    async def test_misses_are_not_cached(self, make_provider, movie_request) -> None:
        provider = make_provider(result=None)
        registry = StreamProviderRegistry([provider])

        await registry.resolve_stream(movie_request)
        await registry.resolve_stream(movie_request)

        assert len(provider.calls) == 2

    async def test_clear_cache(
        self, make_provider, movie_request, embed_stream
    ) -> None:
        provider = make_provider(result=embed_stream)
        registry = StreamProviderRegistry([provider])

        await registry.resolve_stream(movie_request)
        assert registry.clear_cache("tt1234567") == 1
        await registry.resolve_stream(movie_request)

        assert len(provider.calls) == 2


class TestCircuitBreaker:
    async def test_skipped_after_three_failures(
        self, make_provider, movie_request, embed_stream, clock
    ) -> None:
        failing = make_provider(
            name="dub", priority=10, error=ProviderError("dub", "HTTP 500")
        )
        embed = make_provider(name="embed", priority=100, result=embed_stream)
        registry = StreamProviderRegistry(
            [failing, embed], circuit_breaker=ProviderCircuitBreaker(clock=clock)
        )
        opts = StreamOptions(enable_cache=False)

        for _ in range(3):
            assert await registry.resolve_stream(movie_request, opts) is embed_stream
        assert len(failing.calls) == 3

        await registry.resolve_stream(movie_request, opts)
        assert len(failing.calls) == 3

    async def test_retried_after_cooldown(
        self, make_provider, movie_request, dubbed_stream, clock
    ) -> None:
        provider = make_provider(name="dub", error=httpx.ConnectError("refused"))
        registry = StreamProviderRegistry(
            [provider], circuit_breaker=ProviderCircuitBreaker(clock=clock)
        )
        opts = StreamOptions(enable_cache=False)

        for _ in range(3):
            await registry.resolve_stream(movie_request, opts)
        clock.advance(900)
        provider.error = None
        provider.result = dubbed_stream

        assert await registry.resolve_stream(movie_request, opts) is dubbed_stream
        assert len(provider.calls) == 4

    async def test_timeouts_count_as_failures(
        self, make_provider, movie_request
    ) -> None:
        breaker = ProviderCircuitBreaker()
        provider = make_provider(name="dub", error=httpx.ReadTimeout("slow"))
        registry = StreamProviderRegistry([provider], circuit_breaker=breaker)

        await registry.resolve_stream(movie_request)
        assert breaker.failure_count("dub") == 1

    async def test_none_result_is_not_a_failure(
        self, make_provider, movie_request
    ) -> None:
        breaker = ProviderCircuitBreaker()
        registry = StreamProviderRegistry(
            [make_provider(name="dub", result=None)], circuit_breaker=breaker
        )

        await registry.resolve_stream(movie_request)
        assert breaker.failure_count("dub") == 0


class TestHealthAndStatus:
    async def test_check_all_health_skips_failures(self, make_provider) -> None:
        registry = StreamProviderRegistry(
            [make_provider(name="a", priority=1), _SlowProvider()]
        )
        health = await registry.check_all_health()
        assert list(health) == ["a"]
        assert health["a"].is_online is True

    def test_providers_status(self, make_provider) -> None:
        registry = StreamProviderRegistry(
            [
                make_provider(name="embed", priority=100),
                make_provider(name="dub", priority=10),
            ]
        )
        status = registry.get_providers_status()

        assert list(status) == ["dub", "embed"]
        assert status["dub"]["priority"] == 10
        assert status["dub"]["health"]["is_online"] is True
        assert status["dub"]["circuit_breaker"]["state"] == "closed"
