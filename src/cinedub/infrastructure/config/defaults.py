"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "cinedub",
    "environment": "dev",
    "http": {
        "timeout_seconds": 10.0,
        "follow_redirects": True,
        "user_agent": "cinedub/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "resolution": {
        "language_preference": "original",
        "timeout_ms": 10_000,
        "enable_cache": True,
        "cache_ttl_seconds": 1800,
    },
    "circuit_breaker": {
        "failure_threshold": 3,
        "cooldown_seconds": 900.0,
    },
    "health": {
        "enabled": True,
        "interval_seconds": 300.0,
    },
}
