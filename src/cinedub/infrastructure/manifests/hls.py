"""HLS master playlist parsing of ``#EXT-X-MEDIA`` audio renditions.

A master playlist declares alternative audio as::

    #EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aac",LANGUAGE="pt-BR",NAME="Português",DEFAULT=YES,URI="pt/index.m3u8"

Attribute order is not fixed, values may be quoted or bare.
"""

from __future__ import annotations

import re

from cinedub.domain.entities.language import language_name
from cinedub.domain.entities.stream import AudioTrack

_MEDIA_TAG = "#EXT-X-MEDIA:"

# KEY=VALUE pairs; quoted values may contain commas
_ATTR_RE = re.compile(r'([A-Z0-9-]+)=("[^"]*"|[^,]*)')


def is_hls_playlist(content: str) -> bool:
    return content.lstrip("\ufeff").lstrip().startswith("#EXTM3U")


def parse_attributes(attr_list: str) -> dict[str, str]:
    """Parse an HLS attribute list into a dict with unquoted values."""
    attrs: dict[str, str] = {}
    for key, value in _ATTR_RE.findall(attr_list):
        attrs[key] = value.strip('"')
    return attrs


def parse_hls_audio_tracks(manifest: str) -> list[AudioTrack]:
    """Return every AUDIO rendition declared in *manifest*, in order."""
    tracks: list[AudioTrack] = []
    for line in manifest.splitlines():
        line = line.strip()
        if not line.startswith(_MEDIA_TAG):
            continue
        attrs = parse_attributes(line[len(_MEDIA_TAG) :])
        if attrs.get("TYPE") != "AUDIO":
            continue
        lang = attrs.get("LANGUAGE") or "und"
        tracks.append(
            AudioTrack(
                id=attrs.get("GROUP-ID") or lang,
                lang=lang,
                name=attrs.get("NAME") or language_name(lang),
                is_default=attrs.get("DEFAULT") == "YES",
            )
        )
    return tracks
