"""Tests for the in-memory stream cache."""

from __future__ import annotations

from cinedub.domain.entities.stream import Stream, StreamRequest
from cinedub.infrastructure.stream_cache import StreamCache, build_cache_key


def _stream(url: str = "https://example.com/a.m3u8") -> Stream:
    return Stream(url=url, format="hls", source_name="x")


class TestBuildCacheKey:
    def test_movie_key(self) -> None:
        key = build_cache_key(StreamRequest(imdb_id="tt1"), "original")
        assert key == "movie:tt1:original"

    def test_series_key_includes_episode(self) -> None:
        req = StreamRequest(content_type="series", imdb_id="tt1", season=2, episode=5)
        assert build_cache_key(req, "pt-BR") == "series:tt1:2:5:pt-BR"

    def test_tmdb_key(self) -> None:
        key = build_cache_key(StreamRequest(tmdb_id="603"), "en")
        assert key == "movie:603:en"

    def test_preference_changes_key(self) -> None:
        req = StreamRequest(imdb_id="tt1")
        assert build_cache_key(req, "pt-BR") != build_cache_key(req, "original")


class TestStreamCache:
    def test_miss_on_empty(self) -> None:
        assert StreamCache().get("movie:tt1:original") is None

    def test_hit_within_ttl(self, clock) -> None:
        cache = StreamCache(clock=clock)
        stream = _stream()
        cache.put("k", stream)
        clock.advance(1799)
        assert cache.get("k") is stream

    def test_expired_entry_is_evicted(self, clock) -> None:
        cache = StreamCache(clock=clock)
        cache.put("k", _stream())
        clock.advance(1801)
        assert cache.get("k") is None
        assert "k" not in cache

    def test_put_refreshes_timestamp(self, clock) -> None:
        cache = StreamCache(clock=clock)
        cache.put("k", _stream("a"))
        clock.advance(1000)
        cache.put("k", _stream("b"))
        clock.advance(1000)
        hit = cache.get("k")
        assert hit is not None
        assert hit.url == "b"

    def test_max_entries_drops_oldest(self) -> None:
        cache = StreamCache(max_entries=2)
        cache.put("a", _stream())
        cache.put("b", _stream())
        cache.put("c", _stream())
        assert len(cache) == 2
        assert "a" not in cache
        assert "c" in cache


class TestClear:
    def test_clear_all(self) -> None:
        cache = StreamCache()
        cache.put("movie:tt1:original", _stream())
        cache.put("movie:tt2:original", _stream())
        assert cache.clear() == 2
        assert len(cache) == 0

    def test_clear_by_pattern(self) -> None:
        cache = StreamCache()
        cache.put("movie:tt1:original", _stream())
        cache.put("movie:tt1:pt-BR", _stream())
        cache.put("movie:tt2:original", _stream())
        assert cache.clear("tt1") == 2
        assert "movie:tt2:original" in cache
