"""Process-local, time-bounded cache of resolved streams."""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

from cinedub.domain.entities.stream import Stream, StreamRequest

log = structlog.get_logger(__name__)

_DEFAULT_TTL_SECONDS = 30 * 60

# Maximum number of entries kept before the oldest are dropped
_MAX_CACHE_SIZE = 10_000


def build_cache_key(request: StreamRequest, language_preference: str) -> str:
    """Build the cache key for a request.

    >>> build_cache_key(StreamRequest(imdb_id="tt1"), "original")
    'movie:tt1:original'
    """
    key = f"{request.content_type}:{request.id}"
    if request.is_series and request.season and request.episode:
        return f"{key}:{request.season}:{request.episode}:{language_preference}"
    return f"{key}:{language_preference}"


class _CacheEntry:
    __slots__ = ("stream", "cached_at")

    def __init__(self, stream: Stream, cached_at: float) -> None:
        self.stream = stream
        self.cached_at = cached_at


class StreamCache:
    """Maps cache keys to streams; stale entries are evicted lazily on read."""

    def __init__(
        self,
        *,
        ttl_seconds: float = _DEFAULT_TTL_SECONDS,
        max_entries: int = _MAX_CACHE_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> Stream | None:
        """Return the cached stream, or None when missing or stale."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.cached_at < self._ttl:
            return entry.stream
        del self._entries[key]
        log.debug("stream_cache_expired", key=key)
        return None

    def put(self, key: str, stream: Stream) -> None:
        # Re-insert so a refreshed key moves to the back of the eviction order
        self._entries.pop(key, None)
        self._entries[key] = _CacheEntry(stream, self._clock())
        self._enforce_max_size()

    def clear(self, pattern: str | None = None) -> int:
        """Drop every entry, or only those whose key contains *pattern*."""
        if not pattern:
            removed = len(self._entries)
            self._entries.clear()
        else:
            keys = [k for k in self._entries if pattern in k]
            for k in keys:
                del self._entries[k]
            removed = len(keys)
        log.info("stream_cache_cleared", pattern=pattern, removed=removed)
        return removed

    def _enforce_max_size(self) -> None:
        if len(self._entries) <= self._max_entries:
            return
        # Python dicts preserve insertion order; pop from the front
        excess = len(self._entries) - self._max_entries
        for k in list(self._entries)[:excess]:
            del self._entries[k]
