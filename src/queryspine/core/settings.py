"""Query pipeline settings.

Limits, the fallback format and logging defaults are environment-driven so
that a deployment can tune them without code changes.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not at query time
    - **Environment-driven:** Reads ``QUERYSPINE_*`` env vars and .env files
    - **Sensible defaults:** Works out of the box for development

Examples:
    >>> import os
    >>> os.environ["QUERYSPINE_DEFAULT_LIMIT"] = "20"
    >>> reset_settings()
    >>> get_settings().default_limit
    20

Tags:
    settings, configuration, pydantic, environment, queryspine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

import threading

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class QuerySettings(BaseSettings):
    """Settings for query construction and dispatch.

    Fields
    ──────
    default_limit    : Limit used when a query does not set a usable one
    max_limit        : Ceiling applied to COUNT queries (never truncated)
    max_inline_limit : Ceiling printers may apply to inline queries
    default_format   : Format used when the caller gives none
    default_source   : Source name used for an empty ``source`` parameter
    format_aliases   : Extra ``alias -> canonical`` format names
    log_level        : Structlog log level
    log_format       : ``console`` or ``json``
    """

    model_config = SettingsConfigDict(
        env_prefix="QUERYSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Limits ───────────────────────────────────────────────────
    default_limit: int = Field(default=50, ge=0)
    max_limit: int = Field(default=10000, ge=0)
    max_inline_limit: int = Field(default=500, ge=0)

    # ── Dispatch ─────────────────────────────────────────────────
    default_format: str = "auto"
    default_source: str = ""
    format_aliases: dict[str, str] = Field(default_factory=dict)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "console"

    @model_validator(mode="after")
    def _check_limits(self) -> QuerySettings:
        if self.max_limit < self.default_limit:
            raise ValueError(
                f"max_limit ({self.max_limit}) must not be below default_limit ({self.default_limit})"
            )
        return self


_settings: QuerySettings | None = None
_lock = threading.Lock()


def get_settings() -> QuerySettings:
    """Get or create the process-wide settings instance."""
    global _settings
    if _settings is None:
        with _lock:
            if _settings is None:
                _settings = QuerySettings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    global _settings
    with _lock:
        _settings = None
