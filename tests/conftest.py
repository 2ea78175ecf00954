"""Shared test fixtures for the cinedub test suite."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from cinedub.domain.entities.stream import (
    AudioTrack,
    ProviderHealth,
    Stream,
    StreamOptions,
    StreamRequest,
)

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def movie_request() -> StreamRequest:
    return StreamRequest(content_type="movie", imdb_id="tt1234567")


@pytest.fixture()
def series_request() -> StreamRequest:
    return StreamRequest(
        content_type="series", imdb_id="tt7654321", season=2, episode=5
    )


@pytest.fixture()
def options() -> StreamOptions:
    return StreamOptions(timeout_ms=2_000)


@pytest.fixture()
def dubbed_stream() -> Stream:
    return Stream(
        url="https://cdn.example.com/dub/master.m3u8",
        format="hls",
        source_name="DubladoProvider",
        is_dubbed=True,
        audio_tracks=(AudioTrack(id="aud", lang="pt-BR", name="Português"),),
    )


@pytest.fixture()
def embed_stream() -> Stream:
    return Stream(
        url="https://vidsrc.me/embed/movie/tt1234567",
        format="embed",
        source_name="LegendadoEmbed",
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock for breaker/cache timing."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@dataclass
class FakeProvider:
    """In-memory provider satisfying StreamProviderPort."""

    name: str = "fake"
    priority: int = 50
    result: Stream | None = None
    error: BaseException | None = None
    supported: bool = True
    calls: list[StreamRequest] = field(default_factory=list)
    health: ProviderHealth = field(init=False)

    def __post_init__(self) -> None:
        self.health = ProviderHealth(name=self.name, priority=self.priority)

    def supports(self, request: StreamRequest) -> bool:
        return self.supported

    async def get_stream(
        self, request: StreamRequest, options: StreamOptions
    ) -> Stream | None:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        return self.result

    async def check_health(self) -> ProviderHealth:
        self.health = ProviderHealth(
            name=self.name, priority=self.priority, is_online=self.error is None
        )
        return self.health


@pytest.fixture()
def make_provider() -> Callable[..., FakeProvider]:
    def _make(**kwargs: Any) -> FakeProvider:
        return FakeProvider(**kwargs)

    return _make
