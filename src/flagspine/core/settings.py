"""Settings for flagspine.

Refresh cadence, shutdown grace, and HTTP timeout are operational knobs
that differ between a laptop, CI, and production. ``FlagSpineSettings``
exposes them as validated, environment-driven fields.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not runtime
    - **Environment-driven:** Reads from ``FLAGSPINE_*`` env vars and .env files
    - **Sensible defaults:** 900s refresh, 5s shutdown grace
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> from flagspine.core.settings import FlagSpineSettings
    >>> settings = FlagSpineSettings(default_refresh_interval_seconds=60)
    >>> settings.shutdown_grace_seconds
    5.0

Tags:
    settings, configuration, pydantic, environment, flagspine
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from flagspine import __version__

DEFAULT_REFRESH_INTERVAL_SECONDS = 900
DEFAULT_SHUTDOWN_GRACE_SECONDS = 5.0


class FlagSpineSettings(BaseSettings):
    """Runtime settings for flag contexts and the registry.

    Fields
    ──────
    default_refresh_interval_seconds : Interval used until the server sends a TTL
    shutdown_grace_seconds           : How long shutdown waits for an in-flight cycle
    request_timeout_seconds          : Timeout handed to the HTTP client
    product_version                  : Version embedded in the flag resource path
    thread_name_prefix               : Name prefix for background refresh threads
    log_level                        : Structlog log level (CLI only)
    json_logs                        : Force JSON logs (CLI only)
    """

    model_config = SettingsConfigDict(
        env_prefix="FLAGSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Refresh ──────────────────────────────────────────────────
    default_refresh_interval_seconds: float = Field(
        default=DEFAULT_REFRESH_INTERVAL_SECONDS,
        gt=0,
        description="Refresh interval used until the server dictates one",
    )
    shutdown_grace_seconds: float = Field(default=DEFAULT_SHUTDOWN_GRACE_SECONDS, ge=0)

    # ── HTTP ─────────────────────────────────────────────────────
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    product_version: str = __version__

    # ── Threads ──────────────────────────────────────────────────
    thread_name_prefix: str = "flagspine-refresh"

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None


@lru_cache(maxsize=1)
def get_settings() -> FlagSpineSettings:
    """Cached settings, loaded once per process."""
    return FlagSpineSettings()


__all__ = [
    "DEFAULT_REFRESH_INTERVAL_SECONDS",
    "DEFAULT_SHUTDOWN_GRACE_SECONDS",
    "FlagSpineSettings",
    "get_settings",
]
