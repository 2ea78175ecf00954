"""Language helpers shared by providers, the registry and the presenter."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from cinedub.domain.entities.stream import AudioTrack, Stream

PORTUGUESE_CODES: frozenset[str] = frozenset({"pt", "pt-BR", "por"})

_LANGUAGE_NAMES: dict[str, str] = {
    "pt": "Português",
    "pt-BR": "Português (Brasil)",
    "por": "Português",
    "en": "Inglês",
    "en-US": "Inglês (EUA)",
    "es": "Espanhol",
    "fr": "Francês",
    "de": "Alemão",
    "it": "Italiano",
    "ja": "Japonês",
    "und": "Indefinido",
}


def is_portuguese(lang: str | None) -> bool:
    return lang in PORTUGUESE_CODES


def has_portuguese_track(tracks: Iterable[AudioTrack]) -> bool:
    return any(is_portuguese(track.lang) for track in tracks)


def language_name(lang: str | None) -> str:
    """Human label for a language code, falling back to the code itself."""
    if not lang:
        return "Desconhecido"
    return _LANGUAGE_NAMES.get(lang, lang)


def matches_language_preference(stream: Stream, preference: str) -> bool:
    """Decide whether *stream* satisfies the caller's language preference.

    ``pt-BR`` needs a dubbed stream or at least one Portuguese audio
    track.  ``original`` and every other value accept anything.
    """
    if preference == "pt-BR":
        return stream.is_dubbed or has_portuguese_track(stream.audio_tracks)
    return True


def pick_preferred_track(
    tracks: Sequence[AudioTrack], preference: str
) -> AudioTrack | None:
    """Pick the track a player should start with.

    Portuguese first when ``pt-BR`` is preferred, then the manifest
    default, then whatever comes first.
    """
    if not tracks:
        return None
    if preference == "pt-BR":
        for track in tracks:
            if is_portuguese(track.lang):
                return track
    for track in tracks:
        if track.is_default:
            return track
    return tracks[0]
