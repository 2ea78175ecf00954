"""Domain entities for stream resolution.

Pure value objects without framework dependencies, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from cinedub.domain.exceptions import StreamValidationError

ContentType = Literal["movie", "series"]
StreamFormat = Literal["hls", "dash", "embed", "mp4"]
LanguagePreference = Literal["pt-BR", "en", "original"]

CONTENT_TYPES: tuple[str, ...] = ("movie", "series")
LANGUAGE_PREFERENCES: tuple[str, ...] = ("pt-BR", "en", "original")


@dataclass(frozen=True)
class StreamRequest:
    """What the caller wants to watch.

    At least one of ``imdb_id`` / ``tmdb_id`` is required; ``season`` and
    ``episode`` are required together for series and forbidden for movies.
    Call :meth:`validate` before doing any I/O with a request.
    """

    content_type: ContentType = "movie"
    imdb_id: str | None = None
    tmdb_id: str | None = None
    season: int | None = None
    episode: int | None = None
    title: str | None = None
    year: int | None = None

    @property
    def id(self) -> str | None:
        """Preferred identifier: IMDb wins over TMDB."""
        return self.imdb_id or self.tmdb_id or None

    @property
    def is_series(self) -> bool:
        return self.content_type == "series"

    def validate(self) -> None:
        """Raise :class:`StreamValidationError` if the request is unusable."""
        if not self.id:
            raise StreamValidationError("request needs an imdb_id or tmdb_id")
        if self.content_type not in CONTENT_TYPES:
            raise StreamValidationError(
                f"unsupported content type: {self.content_type!r}"
            )
        if self.is_series:
            if self.season is None or self.episode is None:
                raise StreamValidationError(
                    "season and episode are required for series"
                )
            if self.season < 1 or self.episode < 1:
                raise StreamValidationError("season and episode must be positive")
        elif self.season is not None or self.episode is not None:
            raise StreamValidationError("season/episode only apply to series")


@dataclass(frozen=True)
class StreamOptions:
    """Per-call resolution options."""

    language_preference: str = "original"
    timeout_ms: int = 10_000
    enable_cache: bool = True

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise StreamValidationError("timeout_ms must be > 0")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


@dataclass(frozen=True)
class AudioTrack:
    """One audio rendition reported by a manifest or provider API."""

    id: str | int
    lang: str = "und"
    name: str = ""
    is_default: bool = False


@dataclass(frozen=True)
class Subtitle:
    lang: str
    url: str
    name: str = ""


@dataclass(frozen=True)
class Stream:
    """Result of a successful resolution, produced by exactly one provider."""

    url: str
    format: StreamFormat
    source_name: str
    is_dubbed: bool = False
    audio_tracks: tuple[AudioTrack, ...] = ()
    subtitles: tuple[Subtitle, ...] = ()


@dataclass(frozen=True)
class ProviderHealth:
    """Observability snapshot written by the periodic health check."""

    name: str
    priority: int
    is_online: bool = True
    latency_ms: float = 0.0
    last_check_at: datetime | None = field(default=None)
