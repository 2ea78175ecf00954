"""Dubbed stream provider: operator-supplied HLS/DASH/API endpoints.

Disabled until :meth:`DubbedStreamProvider.configure` receives at least
one endpoint template.  Templates may use the placeholders ``{id}``,
``{imdbId}``, ``{tmdbId}``, ``{type}``, ``{season}`` and ``{episode}``::

    hls:  https://cdn.example/dub/{imdbId}/master.m3u8
    dash: https://cdn.example/dub/{imdbId}/manifest.mpd
    api:  https://api.example/dub/{type}/{id}?s={season}&e={episode}

Endpoints are tried in the fixed order HLS → DASH → API, each exactly
once; a failing endpoint is logged and the next one is tried.
"""

from __future__ import annotations

from typing import Any
from xml.etree import ElementTree as ET

import httpx
import structlog

from cinedub.domain.entities.language import has_portuguese_track, language_name
from cinedub.domain.entities.stream import (
    AudioTrack,
    ProviderHealth,
    Stream,
    StreamOptions,
    StreamRequest,
    Subtitle,
)
from cinedub.domain.exceptions import ProviderError, StreamValidationError
from cinedub.infrastructure.manifests.dash import parse_dash_audio_tracks
from cinedub.infrastructure.manifests.hls import (
    is_hls_playlist,
    parse_hls_audio_tracks,
)
from cinedub.infrastructure.providers.health import PROBE_TITLE_ID, measure_health

log = structlog.get_logger(__name__)

_ENDPOINT_ORDER: tuple[str, ...] = ("hls", "dash", "api")
_STREAM_FORMATS = frozenset({"hls", "dash", "embed", "mp4"})
_HEALTH_TIMEOUT = 5.0


def build_endpoint_url(template: str, request: StreamRequest) -> str:
    """Fill the placeholders of an endpoint template from *request*."""
    title_id = request.id or ""
    return (
        template.replace("{id}", title_id)
        .replace("{imdbId}", request.imdb_id or title_id)
        .replace("{tmdbId}", request.tmdb_id or title_id)
        .replace("{type}", request.content_type)
        .replace("{season}", str(request.season) if request.season else "")
        .replace("{episode}", str(request.episode) if request.episode else "")
    )


def _expect_str(item: dict[str, Any], key: str, default: str) -> str:
    value = item.get(key) or default
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _tracks_from_payload(raw: Any) -> tuple[AudioTrack, ...]:
    if not isinstance(raw, list):
        return ()
    tracks: list[AudioTrack] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            continue
        lang = _expect_str(item, "lang", item.get("language") or "und")
        track_id = item.get("id", i)
        if isinstance(track_id, bool) or not isinstance(track_id, (str, int)):
            raise ValueError(f"track id must be a string or int, got {track_id!r}")
        tracks.append(
            AudioTrack(
                id=track_id,
                lang=lang,
                name=_expect_str(item, "name", language_name(lang)),
                is_default=bool(item.get("isDefault", False)),
            )
        )
    return tuple(tracks)


def _subtitles_from_payload(raw: Any) -> tuple[Subtitle, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(
        Subtitle(
            lang=_expect_str(item, "lang", "und"),
            url=_expect_str(item, "url", ""),
            name=_expect_str(item, "name", ""),
        )
        for item in raw
        if isinstance(item, dict) and item.get("url")
    )


class DubbedStreamProvider:
    """Highest-priority provider for Portuguese-dubbed HLS/DASH streams."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        name: str = "DubladoProvider",
        priority: int = 10,
        health_timeout: float = _HEALTH_TIMEOUT,
    ) -> None:
        self._http = http_client
        self._name = name
        self._priority = priority
        self._health_timeout = health_timeout
        self._endpoints: dict[str, str] = {}
        self._enabled = False
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

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def endpoints(self) -> dict[str, str]:
        return dict(self._endpoints)

    def configure(
        self,
        *,
        hls: str | None = None,
        dash: str | None = None,
        api: str | None = None,
    ) -> None:
        """Merge endpoint templates into the current set and enable the provider.

        Idempotent; ``None`` values leave existing templates untouched.
        """
        updates = {"hls": hls, "dash": dash, "api": api}
        self._endpoints.update({k: v for k, v in updates.items() if v})
        self._enabled = True
        log.info(
            "dubbed_provider_configured",
            provider=self._name,
            endpoints=sorted(self._endpoints),
        )

    def supports(self, request: StreamRequest) -> bool:
        return self._enabled and request.content_type in ("movie", "series")

    async def get_stream(
        self, request: StreamRequest, options: StreamOptions
    ) -> Stream | None:
        if not self._enabled:
            log.info("dubbed_provider_disabled", provider=self._name)
            return None
        if not request.id:
            raise StreamValidationError("title id not provided")

        for kind in _ENDPOINT_ORDER:
            template = self._endpoints.get(kind)
            if not template:
                continue
            url = build_endpoint_url(template, request)
            try:
                if kind == "api":
                    stream = await self._get_api_stream(url, options)
                else:
                    stream = await self._get_manifest_stream(kind, url, options)
            except (ProviderError, httpx.HTTPError, ET.ParseError, ValueError) as exc:
                log.warning(
                    "dubbed_endpoint_failed",
                    provider=self._name,
                    endpoint=kind,
                    url=url,
                    error=str(exc),
                )
                continue
            if stream is not None:
                return stream

        return None

    async def _fetch(self, url: str, options: StreamOptions) -> httpx.Response:
        resp = await self._http.get(
            url, timeout=options.timeout_seconds, follow_redirects=True
        )
        if not resp.is_success:
            raise ProviderError(self._name, f"HTTP {resp.status_code} for {url}")
        return resp

    async def _get_manifest_stream(
        self, kind: str, url: str, options: StreamOptions
    ) -> Stream:
        resp = await self._fetch(url, options)
        manifest = resp.text

        if kind == "hls":
            if not is_hls_playlist(manifest):
                raise ProviderError(self._name, f"not an HLS playlist: {url}")
            tracks = parse_hls_audio_tracks(manifest)
        else:
            tracks = parse_dash_audio_tracks(manifest)

        log.debug(
            "dubbed_manifest_parsed",
            provider=self._name,
            format=kind,
            tracks=[t.lang for t in tracks],
        )
        return Stream(
            url=url,
            format="hls" if kind == "hls" else "dash",
            source_name=self._name,
            is_dubbed=has_portuguese_track(tracks),
            audio_tracks=tuple(tracks),
        )

    async def _get_api_stream(self, url: str, options: StreamOptions) -> Stream:
        resp = await self._fetch(url, options)
        data = resp.json()
        if not isinstance(data, dict) or not data.get("url"):
            raise ProviderError(self._name, "API response has no url")
        if not isinstance(data["url"], str):
            raise ProviderError(self._name, "API response url is not a string")

        fmt = data.get("format") or "hls"
        if not isinstance(fmt, str) or fmt not in _STREAM_FORMATS:
            raise ProviderError(self._name, f"unknown stream format: {fmt!r}")
        return Stream(
            url=data["url"],
            format=fmt,
            source_name=self._name,
            # The API is dedicated to dubbed content unless it says otherwise
            is_dubbed=data.get("isDubbed") is not False,
            audio_tracks=_tracks_from_payload(data.get("audioTracks")),
            subtitles=_subtitles_from_payload(data.get("subtitles")),
        )

    async def check_health(self) -> ProviderHealth:
        async def _check() -> bool:
            if not self._enabled:
                return False
            template = next(
                (self._endpoints[k] for k in _ENDPOINT_ORDER if k in self._endpoints),
                None,
            )
            if template is None:
                return False
            probe = StreamRequest(imdb_id=PROBE_TITLE_ID)
            resp = await self._http.head(
                build_endpoint_url(template, probe),
                timeout=self._health_timeout,
                follow_redirects=True,
            )
            return resp.is_success

        self._health = await measure_health(self._name, self._priority, _check)
        return self._health
