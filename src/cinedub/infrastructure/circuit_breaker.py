"""Per-provider circuit breaker to skip repeatedly failing providers.

When a provider accumulates ``failure_threshold`` failures (exceptions
or timeouts) the breaker opens and the provider is skipped.  Once
``cooldown_seconds`` have elapsed since the last failure the breaker
closes again on the next :meth:`allow` check and the counter restarts
from zero.  A success closes the breaker immediately.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum

import structlog

log = structlog.get_logger(__name__)


class _State(Enum):
    CLOSED = "closed"
    OPEN = "open"


class ProviderCircuitBreaker:
    """Track per-provider failure counts and manage open/closed state.

    Not thread-safe, but safe for single-threaded asyncio: every update
    is a single dict write with no await in between.
    """

    def __init__(
        self,
        *,
        failure_threshold: int = 3,
        cooldown_seconds: float = 900.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._threshold = failure_threshold
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._failures: dict[str, int] = {}
        self._states: dict[str, _State] = {}
        self._last_failure_at: dict[str, float] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def allow(self, name: str) -> bool:
        """Return ``True`` if *name* may be attempted.

        - **CLOSED**: always allowed.
        - **OPEN**: blocked until the cooldown since the last failure
          has elapsed, then closed with a fresh counter.
        """
        if self._states.get(name, _State.CLOSED) == _State.CLOSED:
            return True

        elapsed = self._clock() - self._last_failure_at.get(name, 0.0)
        if elapsed >= self._cooldown:
            self._states[name] = _State.CLOSED
            self._failures[name] = 0
            log.info("circuit_breaker_closed", provider=name, reason="cooldown")
            return True
        return False

    def record_success(self, name: str) -> None:
        """Record a successful resolution; resets the breaker to CLOSED."""
        if self._failures.get(name) or name in self._states:
            self._failures[name] = 0
            self._states[name] = _State.CLOSED

    def record_failure(self, name: str) -> None:
        """Record a failed attempt, opening the breaker at the threshold."""
        count = self._failures.get(name, 0) + 1
        self._failures[name] = count
        self._last_failure_at[name] = self._clock()

        if count >= self._threshold and self._states.get(name) != _State.OPEN:
            self._states[name] = _State.OPEN
            log.warning(
                "circuit_breaker_opened",
                provider=name,
                failures=count,
                cooldown_seconds=self._cooldown,
            )

    def state(self, name: str) -> str:
        """Return the current state as a string (for diagnostics)."""
        return self._states.get(name, _State.CLOSED).value

    def failure_count(self, name: str) -> int:
        return self._failures.get(name, 0)

    def describe(self, name: str) -> dict[str, object]:
        """Diagnostic view of one provider's breaker."""
        last = self._last_failure_at.get(name)
        return {
            "state": self.state(name),
            "failures": self.failure_count(name),
            "last_failure_at": (
                datetime.fromtimestamp(last, tz=timezone.utc).isoformat()
                if last is not None
                else None
            ),
        }
