"""Reachability probing and health snapshots shared by providers."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import httpx
import structlog

from cinedub.domain.entities.stream import ProviderHealth

log = structlog.get_logger(__name__)

# Placeholder title used for connectivity probes
PROBE_TITLE_ID = "tt1234567"


async def probe_reachable(
    http_client: httpx.AsyncClient,
    url: str,
    timeout: float,
    *,
    strict_status: bool = False,
) -> bool:
    """Best-effort HEAD probe of an embed page.

    Any HTTP answer means the host is up and the page can be handed to
    a browser, even 403/404 from hosts that reject HEAD.  Connection
    failures and timeouts mean it is not.  With *strict_status* a
    status >= 400 also counts as unreachable.
    """
    try:
        resp = await http_client.head(url, timeout=timeout, follow_redirects=True)
    except httpx.TransportError as exc:
        log.debug("probe_unreachable", url=url, error=type(exc).__name__)
        return False
    except httpx.HTTPError as exc:
        # Redirect loops, decoding errors: the server did answer
        log.debug("probe_answered_with_error", url=url, error=str(exc))
        return True

    if strict_status and resp.status_code >= 400:
        log.debug("probe_bad_status", url=url, status=resp.status_code)
        return False
    return True


async def measure_health(
    name: str,
    priority: int,
    check: Callable[[], Awaitable[bool]],
) -> ProviderHealth:
    """Run *check* and turn its outcome into a :class:`ProviderHealth`.

    Never raises: an exception from *check* is reported as offline.
    """
    t0 = time.monotonic()
    try:
        online = await check()
    except Exception as exc:  # noqa: BLE001
        log.debug("health_check_error", provider=name, error=str(exc))
        online = False
    return ProviderHealth(
        name=name,
        priority=priority,
        is_online=online,
        latency_ms=(time.monotonic() - t0) * 1000,
        last_check_at=datetime.now(timezone.utc),
    )
