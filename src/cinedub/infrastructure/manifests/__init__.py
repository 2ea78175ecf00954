"""Audio-track extraction from streaming manifests."""

from __future__ import annotations

from .dash import parse_dash_audio_tracks
from .hls import is_hls_playlist, parse_hls_audio_tracks

__all__ = ["is_hls_playlist", "parse_dash_audio_tracks", "parse_hls_audio_tracks"]
