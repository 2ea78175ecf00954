"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from cinedub.infrastructure.providers.dub_addon import (
    DEFAULT_FALLBACK_URL,
    DEFAULT_LANGUAGE_MARKERS,
    DEFAULT_PRIMARY_URL,
)
from cinedub.infrastructure.providers.subtitled_embed import (
    DEFAULT_IMDB_FALLBACK_SOURCES,
    DEFAULT_MOVIE_SOURCES,
    DEFAULT_SERIES_SOURCES,
)

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
LanguagePreference = Literal["pt-BR", "en", "original"]


class ResolutionConfig(BaseModel):
    """Defaults applied to resolution calls that do not override them."""

    language_preference: LanguagePreference = Field(
        default="original",
        description="Default language preference (pt-BR, en, original).",
    )
    timeout_ms: int = Field(
        default=10_000,
        gt=0,
        description="Per-attempt network timeout in milliseconds.",
    )
    enable_cache: bool = Field(
        default=True,
        description="Serve repeated requests from the in-process cache.",
    )
    cache_ttl_seconds: float = Field(
        default=1800.0,
        gt=0,
        description="Age after which a cached stream is treated as absent.",
    )
    cache_max_entries: int = Field(
        default=10_000,
        gt=0,
        description="Oldest entries are dropped beyond this size.",
    )
    attempt_deadline_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Optional hard deadline per provider attempt (unset = none).",
    )


class CircuitBreakerConfig(BaseModel):
    failure_threshold: int = Field(
        default=3,
        ge=1,
        description="Failures after which a provider is skipped.",
    )
    cooldown_seconds: float = Field(
        default=900.0,
        ge=0,
        description="Seconds since the last failure before a provider is retried.",
    )


class HealthConfig(BaseModel):
    enabled: bool = Field(default=True, description="Run periodic health checks.")
    interval_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Seconds between health-check cycles.",
    )
    initial_delay_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Delay before the first cycle after startup.",
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for a single connectivity probe.",
    )


class EmbedConfig(BaseModel):
    """Subtitled embed provider settings."""

    priority: int = Field(default=100, description="Lower = attempted earlier.")
    movie_sources: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MOVIE_SOURCES),
        description="Embed base URLs; the title id is appended.",
    )
    series_sources: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SERIES_SOURCES),
        description="Episode URL templates with {id}, {season}, {episode}.",
    )
    imdb_fallback_sources: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IMDB_FALLBACK_SOURCES),
        description="Movie base URLs tried with the IMDb id as a last resort.",
    )
    strict_status: bool = Field(
        default=False,
        description="Treat HTTP status >= 400 as unreachable.",
    )


class DubbedConfig(BaseModel):
    """Dubbed provider endpoint templates; any set value enables the provider."""

    priority: int = Field(default=10, description="Lower = attempted earlier.")
    hls: Optional[str] = Field(default=None, description="HLS playlist template.")
    dash: Optional[str] = Field(default=None, description="DASH manifest template.")
    api: Optional[str] = Field(default=None, description="JSON API URL template.")

    @property
    def is_configured(self) -> bool:
        return bool(self.hls or self.dash or self.api)


class AddonsConfig(BaseModel):
    """Stremio add-on resolver settings."""

    enabled: bool = Field(default=False, description="Register the add-on resolver.")
    priority: int = Field(default=50, description="Lower = attempted earlier.")
    primary_url: str = Field(
        default=DEFAULT_PRIMARY_URL,
        description="Regional add-on base URL.",
    )
    fallback_url: Optional[str] = Field(
        default=DEFAULT_FALLBACK_URL,
        description="Generic torrent-index add-on base URL.",
    )
    language_markers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_LANGUAGE_MARKERS),
        description="Case-insensitive markers identifying dubbed entries.",
    )


class AppConfig(BaseModel):
    """Final, validated configuration produced by ``load_config``.

    HTTP and logging settings are flat fields that also accept the
    sectioned YAML spelling (``http.timeout_seconds``); provider and
    resolution settings live in nested models.
    """

    # General
    app_name: str = Field(default="cinedub", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Default HTTP timeout in seconds.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
        description="Whether the HTTP client follows redirects.",
    )
    http_user_agent: str = Field(
        default="cinedub/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    resolution: ResolutionConfig = Field(default_factory=ResolutionConfig)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    embed: EmbedConfig = Field(default_factory=EmbedConfig)
    dubbed: DubbedConfig = Field(default_factory=DubbedConfig)
    addons: AddonsConfig = Field(default_factory=AddonsConfig)

    fallback_search_url: Optional[str] = Field(
        default="https://vizer.hair/buscar?q={query}",
        description="Search page opened when no stream is found ({query} = title).",
    )

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @field_validator("fallback_search_url")
    @classmethod
    def _validate_search_url(cls, v: Optional[str]) -> Optional[str]:
        if v and "{query}" not in v:
            raise ValueError("fallback_search_url must contain {query}")
        return v or None

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """Sectioned view, the same shape a config.yaml is written in."""
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "resolution": self.resolution.model_dump(),
            "circuit_breaker": self.circuit_breaker.model_dump(),
            "health": self.health.model_dump(),
            "embed": self.embed.model_dump(),
            "dubbed": self.dubbed.model_dump(),
            "addons": self.addons.model_dump(),
            "fallback_search_url": self.fallback_search_url,
        }


class EnvOverrides(BaseSettings):
    """``CINEDUB_*`` environment variables, every one optional.

    Names are the flat keys understood by ``load._normalize_layer``, e.g.
    ``CINEDUB_LOG_LEVEL``, ``CINEDUB_LANGUAGE_PREFERENCE``,
    ``CINEDUB_DUBBED_HLS`` or ``CINEDUB_EMBED_MOVIE_SOURCES`` (comma
    separated).  Only variables that are set end up in the merge.
    """

    model_config = SettingsConfigDict(
        env_prefix="CINEDUB_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None
    fallback_search_url: Optional[str] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    language_preference: Optional[LanguagePreference] = None
    timeout_ms: Optional[int] = None
    enable_cache: Optional[bool] = None
    cache_ttl_seconds: Optional[float] = None
    attempt_deadline_seconds: Optional[float] = None

    breaker_failure_threshold: Optional[int] = None
    breaker_cooldown_seconds: Optional[float] = None

    health_enabled: Optional[bool] = None
    health_interval_seconds: Optional[float] = None

    # Plain strings: split on commas by the loader
    embed_movie_sources: Optional[str] = None
    embed_series_sources: Optional[str] = None
    embed_strict_status: Optional[bool] = None

    dubbed_hls: Optional[str] = None
    dubbed_dash: Optional[str] = None
    dubbed_api: Optional[str] = None

    addons_enabled: Optional[bool] = None
    addons_primary_url: Optional[str] = None
    addons_fallback_url: Optional[str] = None

    def to_update_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
