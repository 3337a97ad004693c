"""
Refresh engine: one fetch-and-decode cycle against the flag endpoint.

Manifesto:
    A refresh is best-effort. The endpoint can be down, slow, behind an
    expired token, or return garbage; none of that may reach the code that
    reads flags, and none of it may stop the next scheduled cycle.

    - **One request per cycle:** GET, fresh auth headers, no retries
    - **All or nothing:** a decoded response replaces the snapshot wholesale
    - **Soft failures:** typed errors inside, a log line outside
    - **Server-driven cadence:** a positive ``ttl_seconds`` reschedules

Architecture:
    ::

        run_cycle()
          │
          ├── fetch()
          │     ├── authenticator.authenticate()   ── AuthError
          │     ├── client.get(url, headers)       ── NetworkError
          │     ├── status != 200                  ── SourceError
          │     └── FeatureFlagsResponse.decode    ── ParseError
          │
          ├── store.replace(response.to_snapshot())
          └── on_interval_change(ttl)   (only for a positive integer TTL)

        Any FlagSpineError  → logger.warning(...), snapshot untouched
        Anything else       → logger.exception(...), snapshot untouched

Tags:
    refresh, http, httpx, ttl, soft-failure, flagspine
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from flagspine.core.errors import (
    AuthError,
    FlagSpineError,
    NetworkError,
    ParseError,
    SourceError,
)
from flagspine.core.logging import get_logger
from flagspine.core.protocols import Authenticator, ComputeIdentity
from flagspine.core.settings import DEFAULT_REFRESH_INTERVAL_SECONDS
from flagspine.scheduling import ScheduledTask

from .models import FeatureFlagsResponse
from .snapshot import SnapshotStore

logger = get_logger(__name__)

FEATURE_FLAGS_PATH = "/api/2.0/connector-service/feature-flags/OSS_JDBC/{version}"

IntervalListener = Callable[[int], None]


def build_feature_flags_url(host: str, product_version: str) -> str:
    """Feature-flag resource URL for ``host``.

    Accepts hosts with or without a scheme and trailing slash.

    Example:
        >>> build_feature_flags_url("https://adb-1.example.net/", "1.2.0")
        'https://adb-1.example.net/api/2.0/connector-service/feature-flags/OSS_JDBC/1.2.0'
    """
    host = host.strip().rstrip("/")
    for scheme in ("https://", "http://"):
        if host.lower().startswith(scheme):
            host = host[len(scheme):]
            break
    return "https://" + host + FEATURE_FLAGS_PATH.format(version=product_version)


@dataclass
class RefreshPolicy:
    """Current refresh cadence for one context.

    Attributes:
        interval_seconds: Interval between scheduled cycles
        task: Handle of the currently scheduled repeating cycle, if any
    """

    interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS
    task: ScheduledTask | None = None


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of one cycle."""

    success: bool
    flag_count: int = 0
    ttl_seconds: int | None = None
    error: FlagSpineError | None = None


class RefreshEngine:
    """Fetches flags for one identity and installs them into a store.

    Args:
        identity: Endpoint to fetch from
        authenticator: Produces request headers, called on every cycle
        client: HTTP client; its own timeout bounds the cycle
        store: Snapshot store to replace on success
        product_version: Version segment of the resource path
        on_interval_change: Called with a positive server TTL after a
            successful cycle
    """

    def __init__(
        self,
        identity: ComputeIdentity,
        authenticator: Authenticator,
        client: httpx.Client,
        store: SnapshotStore,
        *,
        product_version: str,
        on_interval_change: IntervalListener | None = None,
    ) -> None:
        self.identity = identity
        self.url = build_feature_flags_url(identity.host, product_version)
        self._authenticator = authenticator
        self._client = client
        self._store = store
        self._on_interval_change = on_interval_change

    def fetch(self) -> FeatureFlagsResponse:
        """Perform the request and decode the body.

        Raises:
            AuthError: authenticator failed
            NetworkError: transport failure
            SourceError: non-200 status
            ParseError: body is not the expected JSON shape
        """
        identity = self.identity.unique_id
        try:
            headers = dict(self._authenticator.authenticate())
        except FlagSpineError as e:
            raise e.with_context(identity=identity, url=self.url)
        except Exception as e:
            raise AuthError(
                f"Could not authenticate feature flag request: {e}", cause=e
            ).with_context(identity=identity, url=self.url)

        try:
            response = self._client.get(self.url, headers=headers)
        except httpx.HTTPError as e:
            raise NetworkError(
                f"Feature flag request failed: {e}", cause=e
            ).with_context(identity=identity, url=self.url)

        if response.status_code != 200:
            raise SourceError(
                f"Feature flag endpoint returned HTTP {response.status_code}"
            ).with_context(identity=identity, url=self.url, http_status=response.status_code)

        try:
            return FeatureFlagsResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise ParseError(
                f"Malformed feature flag response: {e.error_count()} error(s)", cause=e
            ).with_context(identity=identity, url=self.url, http_status=response.status_code)

    def run_cycle(self) -> RefreshResult:
        """Run one refresh. Never raises."""
        try:
            payload = self.fetch()
        except FlagSpineError as e:
            logger.warning("feature_flags_fetch_failed", **e.to_dict())
            return RefreshResult(success=False, error=e)
        except Exception as e:
            logger.exception("feature_flags_refresh_crashed", identity=self.identity.unique_id)
            return RefreshResult(success=False, error=FlagSpineError(str(e), cause=e))

        snapshot = payload.to_snapshot()
        self._store.replace(snapshot)
        ttl = payload.effective_ttl
        logger.debug(
            "feature_flags_refreshed",
            identity=self.identity.unique_id,
            flag_count=len(snapshot),
            ttl_seconds=ttl,
        )

        if ttl is not None and self._on_interval_change is not None:
            try:
                self._on_interval_change(ttl)
            except Exception:
                logger.exception(
                    "feature_flags_reschedule_failed",
                    identity=self.identity.unique_id,
                    ttl_seconds=ttl,
                )

        return RefreshResult(success=True, flag_count=len(snapshot), ttl_seconds=ttl)
