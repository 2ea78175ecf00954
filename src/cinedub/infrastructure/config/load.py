from __future__ import annotations

import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

# Environment variable naming a YAML file when --config is not given
CONFIG_PATH_ENV = "CINEDUB_CONFIG"

_TOP_LEVEL_KEYS: tuple[str, ...] = ("app_name", "environment", "fallback_search_url")

# Flat key (env var / CLI override) -> (section, key in section)
_FLAT_KEYS: dict[str, tuple[str, str]] = {
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_follow_redirects": ("http", "follow_redirects"),
    "http_user_agent": ("http", "user_agent"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "language_preference": ("resolution", "language_preference"),
    "timeout_ms": ("resolution", "timeout_ms"),
    "enable_cache": ("resolution", "enable_cache"),
    "cache_ttl_seconds": ("resolution", "cache_ttl_seconds"),
    "attempt_deadline_seconds": ("resolution", "attempt_deadline_seconds"),
    "breaker_failure_threshold": ("circuit_breaker", "failure_threshold"),
    "breaker_cooldown_seconds": ("circuit_breaker", "cooldown_seconds"),
    "health_enabled": ("health", "enabled"),
    "health_interval_seconds": ("health", "interval_seconds"),
    "embed_movie_sources": ("embed", "movie_sources"),
    "embed_series_sources": ("embed", "series_sources"),
    "embed_strict_status": ("embed", "strict_status"),
    "dubbed_hls": ("dubbed", "hls"),
    "dubbed_dash": ("dubbed", "dash"),
    "dubbed_api": ("dubbed", "api"),
    "addons_enabled": ("addons", "enabled"),
    "addons_primary_url": ("addons", "primary_url"),
    "addons_fallback_url": ("addons", "fallback_url"),
}

_SECTIONS: frozenset[str] = frozenset(section for section, _ in _FLAT_KEYS.values())

# Flat keys whose value is a list; env vars give them comma-separated
_LIST_KEYS: frozenset[str] = frozenset({"embed_movie_sources", "embed_series_sources"})


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge *override* into *base* in place.

    Nested mappings merge key by key; any other value replaces what
    *base* had.
    """
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, Mapping):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _split_list(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


def _normalize_layer(data: Mapping[str, Any]) -> dict[str, Any]:
    """Bring one layer (defaults, YAML, env, CLI) into the sectioned shape.

    Sections (``http:``, ``resolution:``, ...) pass through; flat keys
    such as ``dubbed_hls`` or ``timeout_ms`` are moved into their section.
    Unknown keys are dropped.
    """
    out: dict[str, Any] = {
        section: dict(data[section])
        for section in _SECTIONS
        if isinstance(data.get(section), Mapping)
    }
    out.update({key: data[key] for key in _TOP_LEVEL_KEYS if key in data})

    for flat_key, (section, key) in _FLAT_KEYS.items():
        if flat_key not in data:
            continue
        value = data[flat_key]
        if flat_key in _LIST_KEYS:
            value = _split_list(value)
        out.setdefault(section, {})[key] = value
    return out


def _read_yaml_config(config_path: Path) -> dict[str, Any]:
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"{config_path}: top level must be a mapping")
    return parsed


def _resolve_config_path(config_path: Path | None) -> Path | None:
    if config_path is not None:
        return config_path
    from_env = os.getenv(CONFIG_PATH_ENV)
    return Path(from_env) if from_env else None


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Build the validated configuration.

    Layers, later wins: built-in defaults, the YAML file (``config_path``
    or ``$CINEDUB_CONFIG``), ``CINEDUB_*`` environment variables
    (including those from ``dotenv_path``), then ``cli_overrides``.

    Reads files only; never creates anything on disk.
    """
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    merged = _normalize_layer(deepcopy(DEFAULT_CONFIG))

    yaml_path = _resolve_config_path(config_path)
    if yaml_path is not None:
        if not yaml_path.exists():
            raise FileNotFoundError(yaml_path)
        _deep_merge(merged, _normalize_layer(_read_yaml_config(yaml_path)))

    for layer in (EnvOverrides().to_update_dict(), cli_overrides or {}):
        _deep_merge(merged, _normalize_layer(layer))

    return AppConfig.model_validate(merged)
