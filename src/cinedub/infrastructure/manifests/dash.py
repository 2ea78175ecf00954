"""DASH MPD parsing of audio ``AdaptationSet`` elements."""

from __future__ import annotations

from xml.etree import ElementTree as ET

from cinedub.domain.entities.language import language_name
from cinedub.domain.entities.stream import AudioTrack


def _local(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in elem if _local(child.tag) == name]


def _is_audio(adaptation_set: ET.Element) -> bool:
    if adaptation_set.get("contentType") == "audio":
        return True
    mime = adaptation_set.get("mimeType", "")
    if mime == "audio" or mime.startswith("audio/"):
        return True
    # mimeType may live on the Representation only
    return any(
        rep.get("mimeType", "").startswith("audio/")
        for rep in _children(adaptation_set, "Representation")
    )


def _is_main(adaptation_set: ET.Element) -> bool:
    if adaptation_set.get("role") == "main":
        return True
    return any(
        role.get("value") == "main" for role in _children(adaptation_set, "Role")
    )


def parse_dash_audio_tracks(manifest: str) -> list[AudioTrack]:
    """Return the audio adaptation sets of *manifest* as tracks.

    Raises ``xml.etree.ElementTree.ParseError`` on malformed XML.
    """
    root = ET.fromstring(manifest)
    tracks: list[AudioTrack] = []
    for elem in root.iter():
        if _local(elem.tag) != "AdaptationSet" or not _is_audio(elem):
            continue
        lang = elem.get("lang") or "und"
        labels = _children(elem, "Label")
        label = (labels[0].text or "").strip() if labels else ""
        tracks.append(
            AudioTrack(
                id=elem.get("id") or lang,
                lang=lang,
                name=label or language_name(lang),
                is_default=_is_main(elem),
            )
        )
    return tracks
