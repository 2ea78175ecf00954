"""Subtitled embed provider: third-party embed pages with original audio.

Tries a fixed, ordered list of embed hosts and hands back the first one
that answers.  The result is an ``embed`` page: original audio, no
programmatic audio-track control.

Movies:  ``{base}{id}`` for every base in ``movie_sources``, then
         ``{fallback}{imdb_id}`` when an IMDb id is known.
Series:  every ``series_sources`` template with ``{id}``, ``{season}``
         and ``{episode}`` filled in.
"""

from __future__ import annotations

from collections.abc import Sequence

import httpx
import structlog

from cinedub.domain.entities.stream import (
    ProviderHealth,
    Stream,
    StreamOptions,
    StreamRequest,
)
from cinedub.domain.exceptions import StreamValidationError
from cinedub.infrastructure.providers.health import (
    PROBE_TITLE_ID,
    measure_health,
    probe_reachable,
)

log = structlog.get_logger(__name__)

DEFAULT_MOVIE_SOURCES: tuple[str, ...] = (
    "https://vidsrc.me/embed/movie/",
    "https://2embed.cc/embed/movie/",
    "https://embed.su/embed/movie/",
    "https://www.2embed.cc/embed/movie/",
    "https://v2.vidsrc.me/embed/movie/",
)

DEFAULT_SERIES_SOURCES: tuple[str, ...] = (
    "https://vidsrc.me/embed/tv/{id}/{season}/{episode}",
    "https://2embed.cc/embed/tv/{id}/{season}/{episode}",
    "https://embed.su/embed/tv/{id}/{season}/{episode}",
    "https://vidsrc.to/embed/tv/{id}/{season}/{episode}",
)

DEFAULT_IMDB_FALLBACK_SOURCES: tuple[str, ...] = ("https://vidsrc.to/embed/movie/",)

_HEALTH_TIMEOUT = 5.0


class SubtitledEmbedProvider:
    """Fallback provider returning the first reachable embed page."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        name: str = "LegendadoEmbed",
        priority: int = 100,
        movie_sources: Sequence[str] = DEFAULT_MOVIE_SOURCES,
        series_sources: Sequence[str] = DEFAULT_SERIES_SOURCES,
        imdb_fallback_sources: Sequence[str] = DEFAULT_IMDB_FALLBACK_SOURCES,
        strict_status: bool = False,
        health_timeout: float = _HEALTH_TIMEOUT,
    ) -> None:
        self._http = http_client
        self._name = name
        self._priority = priority
        self._movie_sources = tuple(movie_sources)
        self._series_sources = tuple(series_sources)
        self._imdb_fallback_sources = tuple(imdb_fallback_sources)
        self._strict_status = strict_status
        self._health_timeout = health_timeout
        self._health = ProviderHealth(name=name, priority=priority)

    @property
    def name(self) -> str:
        return self._name

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def health(self) -> ProviderHealth:
        return self._health

    def supports(self, request: StreamRequest) -> bool:
        return request.content_type in ("movie", "series")

    async def get_stream(
        self, request: StreamRequest, options: StreamOptions
    ) -> Stream | None:
        if request.is_series:
            return await self._get_series_stream(request, options)

        title_id = request.id
        if not title_id:
            raise StreamValidationError("movie id not provided")

        candidates = [f"{base}{title_id}" for base in self._movie_sources]
        url = await self._first_reachable(candidates, options.timeout_seconds)
        if url is None and request.imdb_id:
            fallbacks = [
                f"{base}{request.imdb_id}" for base in self._imdb_fallback_sources
            ]
            url = await self._first_reachable(fallbacks, options.timeout_seconds)
            if url is not None:
                log.info("embed_imdb_fallback_used", provider=self._name, url=url)

        return self._to_stream(url) if url else None

    async def _get_series_stream(
        self, request: StreamRequest, options: StreamOptions
    ) -> Stream | None:
        if not request.season or not request.episode:
            raise StreamValidationError("season and episode are required for series")
        title_id = request.id
        if not title_id:
            raise StreamValidationError("series id not provided")

        candidates = [
            template.replace("{id}", title_id)
            .replace("{season}", str(request.season))
            .replace("{episode}", str(request.episode))
            for template in self._series_sources
        ]
        url = await self._first_reachable(candidates, options.timeout_seconds)
        return self._to_stream(url) if url else None

    async def _first_reachable(
        self, candidates: Sequence[str], timeout: float
    ) -> str | None:
        for url in candidates:
            log.debug("embed_probe", provider=self._name, url=url)
            if await probe_reachable(
                self._http, url, timeout, strict_status=self._strict_status
            ):
                return url
            log.info("embed_source_unreachable", provider=self._name, url=url)
        return None

    def _to_stream(self, url: str) -> Stream:
        return Stream(url=url, format="embed", source_name=self._name, is_dubbed=False)

    async def check_health(self) -> ProviderHealth:
        async def _check() -> bool:
            if not self._movie_sources:
                return False
            return await probe_reachable(
                self._http,
                f"{self._movie_sources[0]}{PROBE_TITLE_ID}",
                self._health_timeout,
                strict_status=self._strict_status,
            )

        self._health = await measure_health(self._name, self._priority, _check)
        return self._health
