from .language import (
    PORTUGUESE_CODES,
    has_portuguese_track,
    is_portuguese,
    language_name,
    matches_language_preference,
    pick_preferred_track,
)
from .stream import (
    CONTENT_TYPES,
    LANGUAGE_PREFERENCES,
    AudioTrack,
    ContentType,
    LanguagePreference,
    ProviderHealth,
    Stream,
    StreamFormat,
    StreamOptions,
    StreamRequest,
    Subtitle,
)

__all__ = [
    "CONTENT_TYPES",
    "LANGUAGE_PREFERENCES",
    "PORTUGUESE_CODES",
    "AudioTrack",
    "ContentType",
    "LanguagePreference",
    "ProviderHealth",
    "Stream",
    "StreamFormat",
    "StreamOptions",
    "StreamRequest",
    "Subtitle",
    "has_portuguese_track",
    "is_portuguese",
    "language_name",
    "matches_language_preference",
    "pick_preferred_track",
]
