"""Dub add-on resolver: Portuguese streams from Stremio add-on catalogs.

Queries ``{base}/stream/{type}/{id}.json`` on a regional add-on first,
then on a generic torrent-index add-on.  Entries qualify when their
title, name or description mentions one of the language markers.

Regional catalog: first qualifying entry wins.
Fallback catalog: qualifying entries are ranked by the resolution in
their description (``1080p`` → 1080, none → 0), best first.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

import httpx
import structlog

from cinedub.domain.entities.stream import (
    ProviderHealth,
    Stream,
    StreamOptions,
    StreamRequest,
)
from cinedub.domain.exceptions import ProviderError, StreamValidationError
from cinedub.infrastructure.providers.health import measure_health

log = structlog.get_logger(__name__)

DEFAULT_PRIMARY_URL = "https://27a5b2bfe3c0-stremio-brazilian-addon.baby-beamup.club"
DEFAULT_FALLBACK_URL = "https://torrentio.strem.fun"
DEFAULT_LANGUAGE_MARKERS: tuple[str, ...] = ("PT-BR", "Dublado", "Português", "Latino")

_QUALITY_RE = re.compile(r"(\d+)p")
_HEALTH_TIMEOUT = 5.0


def extract_quality(description: str) -> int:
    """Return the vertical resolution mentioned in *description*.

    >>> extract_quality("Filme 1080p WEB-DL")
    1080
    >>> extract_quality("no quality here")
    0
    """
    match = _QUALITY_RE.search(description)
    return int(match.group(1)) if match else 0


def infer_format(url: str) -> str:
    return "hls" if url.endswith(".m3u8") else "mp4"


def build_stremio_id(request: StreamRequest) -> str:
    """Stremio addresses episodes as ``{id}:{season}:{episode}``."""
    title_id = request.id or ""
    if request.is_series and request.season and request.episode:
        return f"{title_id}:{request.season}:{request.episode}"
    return title_id


class DubAddonResolver:
    """Provider backed by Stremio-protocol add-ons."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        name: str = "StremioDubAddon",
        priority: int = 50,
        primary_url: str = DEFAULT_PRIMARY_URL,
        fallback_url: str | None = DEFAULT_FALLBACK_URL,
        language_markers: Sequence[str] = DEFAULT_LANGUAGE_MARKERS,
        health_timeout: float = _HEALTH_TIMEOUT,
    ) -> None:
        self._http = http_client
        self._name = name
        self._priority = priority
        self._primary_url = primary_url.rstrip("/")
        self._fallback_url = fallback_url.rstrip("/") if fallback_url else None
        self._markers = tuple(m.lower() for m in language_markers)
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

    def is_dubbed_entry(self, entry: dict[str, Any]) -> bool:
        text = " ".join(
            str(entry.get(field) or "") for field in ("title", "name", "description")
        ).lower()
        return any(marker in text for marker in self._markers)

    async def get_stream(
        self, request: StreamRequest, options: StreamOptions
    ) -> Stream | None:
        if not request.id:
            raise StreamValidationError("title id not provided")
        stremio_id = build_stremio_id(request)

        entries = await self._query(self._primary_url, request, stremio_id, options)
        for entry in entries:
            if entry.get("url") and self.is_dubbed_entry(entry):
                log.info("dub_addon_match", provider=self._name, catalog="primary")
                return self._to_stream(entry["url"])

        if self._fallback_url is None:
            return None

        entries = await self._query(self._fallback_url, request, stremio_id, options)
        ranked = sorted(
            (e for e in entries if e.get("url") and self.is_dubbed_entry(e)),
            key=lambda e: extract_quality(str(e.get("description") or "")),
            reverse=True,
        )
        if ranked:
            log.info(
                "dub_addon_match",
                provider=self._name,
                catalog="fallback",
                candidates=len(ranked),
            )
            return self._to_stream(ranked[0]["url"])
        return None

    async def _query(
        self,
        base_url: str,
        request: StreamRequest,
        stremio_id: str,
        options: StreamOptions,
    ) -> list[dict[str, Any]]:
        """Fetch one catalog's stream list; failures yield an empty list."""
        url = f"{base_url}/stream/{request.content_type}/{stremio_id}.json"
        try:
            resp = await self._http.get(
                url, timeout=options.timeout_seconds, follow_redirects=True
            )
            if not resp.is_success:
                raise ProviderError(self._name, f"HTTP {resp.status_code} for {url}")
            data = resp.json()
        except (ProviderError, httpx.HTTPError, ValueError) as exc:
            log.warning(
                "dub_addon_catalog_failed",
                provider=self._name,
                url=url,
                error=str(exc),
            )
            return []

        streams = data.get("streams") if isinstance(data, dict) else None
        if not isinstance(streams, list):
            return []
        return [s for s in streams if isinstance(s, dict)]

    def _to_stream(self, url: str) -> Stream:
        return Stream(
            url=url,
            format=infer_format(url),
            source_name=self._name,
            is_dubbed=True,
        )

    async def check_health(self) -> ProviderHealth:
        async def _check() -> bool:
            resp = await self._http.get(
                f"{self._primary_url}/manifest.json",
                timeout=self._health_timeout,
                follow_redirects=True,
            )
            return resp.is_success

        self._health = await measure_health(self._name, self._priority, _check)
        return self._health
