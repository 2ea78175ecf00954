"""Stream resolution exceptions."""

from __future__ import annotations


class CinedubError(Exception):
    """Base class for all cinedub errors."""


class StreamValidationError(CinedubError):
    """Raised when a stream request or its options are malformed.

    Never retried and never counted against a provider.
    """


class ProviderError(CinedubError):
    """Raised by a provider for network, protocol or payload failures."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderNotFoundError(CinedubError):
    """Raised when a provider name is not known to the registry."""
