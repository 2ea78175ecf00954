"""JSON rendering of resolved streams for browser-side consumers."""

from __future__ import annotations

from typing import Any

from cinedub.domain.entities.language import pick_preferred_track
from cinedub.domain.entities.stream import Stream


def present_stream(stream: Stream | None, preference: str) -> dict[str, Any] | None:
    """Render *stream* in the camelCase shape the web UI consumes.

    ``preferredAudioTrackId`` tells the playback layer which track to
    select first.
    """
    if stream is None:
        return None
    preferred = pick_preferred_track(stream.audio_tracks, preference)
    return {
        "url": stream.url,
        "format": stream.format,
        "sourceName": stream.source_name,
        "isDubbed": stream.is_dubbed,
        "audioTracks": [
            {
                "id": t.id,
                "lang": t.lang,
                "name": t.name,
                "isDefault": t.is_default,
            }
            for t in stream.audio_tracks
        ],
        "subtitles": [
            {"lang": s.lang, "url": s.url, "name": s.name} for s in stream.subtitles
        ],
        "preferredAudioTrackId": preferred.id if preferred is not None else None,
    }
