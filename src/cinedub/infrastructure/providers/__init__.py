"""Stream provider implementations and the resolution registry."""

from __future__ import annotations

from .dub_addon import DubAddonResolver
from .dubbed_stream import DubbedStreamProvider
from .registry import StreamProviderRegistry
from .subtitled_embed import SubtitledEmbedProvider

__all__ = [
    "DubAddonResolver",
    "DubbedStreamProvider",
    "StreamProviderRegistry",
    "SubtitledEmbedProvider",
]
