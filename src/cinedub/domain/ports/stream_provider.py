"""Port for pluggable stream providers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cinedub.domain.entities.stream import (
    ProviderHealth,
    Stream,
    StreamOptions,
    StreamRequest,
)


@runtime_checkable
class StreamProviderPort(Protocol):
    """A source that can turn a :class:`StreamRequest` into a :class:`Stream`.

    Implementations are shared across concurrent resolutions and must not
    keep per-request state; the only thing they mutate is their own
    health snapshot.
    """

    @property
    def name(self) -> str:
        """Unique provider identity (e.g. 'LegendadoEmbed')."""
        ...

    @property
    def priority(self) -> int:
        """Lower value = attempted earlier."""
        ...

    @property
    def health(self) -> ProviderHealth:
        """Last snapshot written by :meth:`check_health`."""
        ...

    def supports(self, request: StreamRequest) -> bool:
        """Cheap, synchronous, side-effect-free eligibility filter."""
        ...

    async def get_stream(
        self, request: StreamRequest, options: StreamOptions
    ) -> Stream | None:
        """Resolve *request*.

        Returns None when the provider legitimately has nothing.
        Raises ProviderError for network/protocol failures and
        StreamValidationError for unusable requests.
        """
        ...

    async def check_health(self) -> ProviderHealth:
        """Lightweight connectivity probe.  Never raises."""
        ...
