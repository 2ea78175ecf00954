"""Stream resolution endpoints (JSON lookup, watch redirect, operations)."""

from __future__ import annotations

from typing import cast
from urllib.parse import quote_plus

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from cinedub.domain.entities.stream import (
    CONTENT_TYPES,
    ContentType,
    Stream,
    StreamOptions,
    StreamRequest,
)
from cinedub.domain.exceptions import StreamValidationError
from cinedub.interfaces.api.streams.presenter import present_stream
from cinedub.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["streams"])


class DubbedEndpoints(BaseModel):
    hls: str | None = None
    dash: str | None = None
    api: str | None = None


def _parse_stream_id(
    content_type: str,
    raw_id: str,
    *,
    title: str | None = None,
    year: int | None = None,
) -> StreamRequest | None:
    """Parse a stream ID into a StreamRequest.

    Movies: "tt1234567", "tmdb:12345" or "12345"
    Series: the same followed by ":{season}:{episode}", e.g. "tt1234567:1:5"
    """
    if content_type not in CONTENT_TYPES:
        return None
    ct = cast(ContentType, content_type)

    if raw_id.startswith("tmdb:"):
        raw_id = raw_id[len("tmdb:") :]
        is_imdb = False
    else:
        is_imdb = raw_id.startswith("tt")

    parts = raw_id.split(":")
    title_id = parts[0]
    if not title_id or (not is_imdb and not title_id.isdigit()):
        return None

    season: int | None = None
    episode: int | None = None
    if len(parts) == 3:
        try:
            season = int(parts[1])
            episode = int(parts[2])
        except ValueError:
            return None
    elif len(parts) != 1:
        return None

    return StreamRequest(
        content_type=ct,
        imdb_id=title_id if is_imdb else None,
        tmdb_id=None if is_imdb else title_id,
        season=season,
        episode=episode,
        title=title,
        year=year,
    )


def _build_options(
    state: AppState,
    lang: str | None,
    timeout_ms: int | None,
    cache: bool | None,
) -> StreamOptions:
    defaults = state.config.resolution
    return StreamOptions(
        language_preference=lang or defaults.language_preference,
        timeout_ms=defaults.timeout_ms if timeout_ms is None else timeout_ms,
        enable_cache=defaults.enable_cache if cache is None else cache,
    )


async def _resolve(
    request: Request,
    content_type: str,
    stream_id: str,
    *,
    lang: str | None,
    timeout_ms: int | None,
    cache: bool | None,
    title: str | None,
    year: int | None,
) -> tuple[StreamRequest, StreamOptions, Stream | None]:
    state = cast(AppState, request.app.state)
    parsed = _parse_stream_id(content_type, stream_id, title=title, year=year)
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"invalid stream id: {stream_id}")
    try:
        options = _build_options(state, lang, timeout_ms, cache)
        stream = await state.registry.resolve_stream(parsed, options)
    except StreamValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return parsed, options, stream


@router.get("/stream/{content_type}/{stream_id}.json")
async def stream_lookup(
    request: Request,
    content_type: str,
    stream_id: str,
    lang: str | None = None,
    timeout_ms: int | None = None,
    cache: bool | None = None,
    title: str | None = None,
    year: int | None = None,
) -> JSONResponse:
    """Resolve a title and return the stream (or null) as JSON."""
    _, options, stream = await _resolve(
        request,
        content_type,
        stream_id,
        lang=lang,
        timeout_ms=timeout_ms,
        cache=cache,
        title=title,
        year=year,
    )
    return JSONResponse(
        content={"stream": present_stream(stream, options.language_preference)},
        headers={"Access-Control-Allow-Origin": "*"},
    )


@router.get("/watch/{content_type}/{stream_id}")
async def watch_redirect(
    request: Request,
    content_type: str,
    stream_id: str,
    lang: str | None = None,
    timeout_ms: int | None = None,
    cache: bool | None = None,
    title: str | None = None,
    year: int | None = None,
) -> RedirectResponse:
    """Send the browser straight to the resolved stream.

    Falls back to the configured search page when nothing is found and
    the title is known.
    """
    state = cast(AppState, request.app.state)
    parsed, _, stream = await _resolve(
        request,
        content_type,
        stream_id,
        lang=lang,
        timeout_ms=timeout_ms,
        cache=cache,
        title=title,
        year=year,
    )
    if stream is not None:
        return RedirectResponse(stream.url, status_code=307)

    search_url = state.config.fallback_search_url
    if parsed.title and search_url:
        target = search_url.replace("{query}", quote_plus(parsed.title))
        log.info("watch_fallback_search", stream_id=stream_id, url=target)
        return RedirectResponse(target, status_code=307)

    raise HTTPException(status_code=404, detail="no stream available")


@router.get("/providers/status")
async def providers_status(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    return JSONResponse(content=state.registry.get_providers_status())


@router.post("/providers/dubbed/configure")
async def configure_dubbed(request: Request, body: DubbedEndpoints) -> JSONResponse:
    """Enable the dubbed provider with the given endpoint templates."""
    state = cast(AppState, request.app.state)
    if not state.registry.configure_dubbed_provider(
        hls=body.hls, dash=body.dash, api=body.api
    ):
        raise HTTPException(status_code=404, detail="dubbed provider not registered")
    return JSONResponse(content={"configured": True})


@router.delete("/cache")
async def clear_cache(request: Request, pattern: str | None = None) -> JSONResponse:
    state = cast(AppState, request.app.state)
    return JSONResponse(content={"removed": state.registry.clear_cache(pattern)})
