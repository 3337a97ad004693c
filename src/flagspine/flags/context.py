"""
Feature flag context: one endpoint, one snapshot, one refresh thread.

Manifesto:
    Reading a flag must be as cheap as a dict lookup and must never wait
    on the network. All network work happens once synchronously (priming,
    so the first reader never sees an unprimed cache) and afterwards on a
    dedicated background thread at a server-dictated cadence.

Architecture:
    ::

        FeatureFlagsContext(identity)
        ├── SnapshotStore            ◄── read by is_enabled(), any thread
        ├── RefreshPolicy            ◄── interval + current ScheduledTask
        ├── RefreshEngine            ◄── run_cycle(), reports TTL changes
        └── SchedulerBackend         ◄── the one background thread (ThreadSchedulerBackend)

        State machine:

        UNINITIALIZED ─► PRIMING ─► SCHEDULED(I) ─► SCHEDULED(I') ...
                                         │
                                         ▼
                                  SHUTTING_DOWN ─► TERMINATED (absorbing)

Examples:
    >>> ctx = FeatureFlagsContext(ComputeResource("adb-1.example.net", "wh-1"),
    ...                           BearerTokenAuthenticator(token))
    >>> ctx.is_enabled("databricks.partnerplatform.clientConfigsFeatureFlags.enableTelemetry")
    False
    >>> ctx.shutdown()

Guardrails:
    ❌ DON'T: Construct contexts per request
    ✅ DO: Share them through FeatureFlagsRegistry

    ❌ DON'T: Forget shutdown() on contexts you built yourself
    ✅ DO: Let the registry release them, or call shutdown() explicitly

Tags:
    feature-flags, context, background-refresh, ttl, lifecycle, flagspine
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from enum import Enum

import httpx

from flagspine.core.auth import StaticHeadersAuthenticator
from flagspine.core.logging import LogContext, get_logger
from flagspine.core.protocols import Authenticator, ComputeIdentity
from flagspine.core.settings import FlagSpineSettings, get_settings
from flagspine.scheduling import ScheduledTask, SchedulerBackend, ThreadSchedulerBackend

from .refresh import RefreshEngine, RefreshPolicy, RefreshResult
from .snapshot import SnapshotStore, is_truthy

logger = get_logger(__name__)


class ContextState(str, Enum):
    """Lifecycle states of a FeatureFlagsContext."""

    UNINITIALIZED = "uninitialized"
    PRIMING = "priming"
    SCHEDULED = "scheduled"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


class FeatureFlagsContext:
    """Flag view for one compute endpoint.

    Construction performs one synchronous refresh (unless ``initial_flags``
    is given) and then schedules periodic refreshes, the first one a full
    interval later.

    Args:
        identity: Endpoint to fetch flags from
        authenticator: Request header source (no headers if omitted)
        settings: Refresh/shutdown settings (process settings if omitted)
        client: HTTP client to use. When omitted the context creates one
            and closes it on shutdown.
        initial_flags: Preload these flags and skip the priming request
        scheduler: Backend that runs the repeating refresh. Defaults to a
            ThreadSchedulerBackend named after the identity.
    """

    def __init__(
        self,
        identity: ComputeIdentity,
        authenticator: Authenticator | None = None,
        *,
        settings: FlagSpineSettings | None = None,
        client: httpx.Client | None = None,
        initial_flags: Mapping[str, str] | None = None,
        scheduler: SchedulerBackend | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.identity = identity
        self._state = ContextState.UNINITIALIZED
        self._lock = threading.Lock()

        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self._settings.request_timeout_seconds)
        self._store = SnapshotStore()
        self._policy = RefreshPolicy(
            interval_seconds=self._settings.default_refresh_interval_seconds
        )
        self._scheduler: SchedulerBackend = scheduler or ThreadSchedulerBackend(
            thread_name=f"{self._settings.thread_name_prefix}-{identity.unique_id}"
        )
        self._engine = RefreshEngine(
            identity,
            authenticator or StaticHeadersAuthenticator(),
            self._client,
            self._store,
            product_version=self._settings.product_version,
            on_interval_change=self._on_interval_change,
        )

        if initial_flags is not None:
            self._store.replace(initial_flags)
        else:
            self._state = ContextState.PRIMING
            self._refresh_once()

        with self._lock:
            self._state = ContextState.SCHEDULED
            self._schedule()
        logger.debug(
            "feature_flags_context_started",
            identity=identity.unique_id,
            interval_seconds=self._policy.interval_seconds,
            flag_count=len(self._store),
        )

    # ── Reads ────────────────────────────────────────────────────

    def is_enabled(self, name: str) -> bool:
        """True only if the current value of ``name`` is "true" (any case)."""
        return is_truthy(self._store.read(name))

    def get_value(self, name: str) -> str | None:
        """Raw string value of ``name``, or None if absent."""
        return self._store.read(name)

    def flags(self) -> Mapping[str, str]:
        """The whole current snapshot (read-only)."""
        return self._store.snapshot()

    # ── Scheduling ───────────────────────────────────────────────

    def _refresh_once(self) -> RefreshResult:
        with LogContext(identity=self.identity.unique_id):
            return self._engine.run_cycle()

    def _schedule(self) -> None:
        # Caller holds self._lock
        if self._policy.task is not None:
            self._policy.task.cancel()
        self._policy.task = self._scheduler.schedule_at_fixed_rate(
            self._refresh_once, self._policy.interval_seconds
        )

    def _on_interval_change(self, ttl_seconds: int) -> None:
        with self._lock:
            if self._state in (ContextState.SHUTTING_DOWN, ContextState.TERMINATED):
                return
            self._policy.interval_seconds = ttl_seconds
            # While priming, the interval is picked up by the first schedule
            if self._state is ContextState.SCHEDULED:
                self._schedule()
                logger.debug(
                    "feature_flags_rescheduled",
                    identity=self.identity.unique_id,
                    interval_seconds=ttl_seconds,
                )

    # ── Lifecycle ────────────────────────────────────────────────

    def shutdown(self) -> None:
        """Stop background refresh. Safe to call more than once."""
        with self._lock:
            if self._state in (ContextState.SHUTTING_DOWN, ContextState.TERMINATED):
                return
            self._state = ContextState.SHUTTING_DOWN
            task = self._policy.task
            self._policy.task = None

        if task is not None:
            task.cancel()
        stopped = self._scheduler.shutdown(self._settings.shutdown_grace_seconds)
        if self._owns_client:
            self._client.close()

        with self._lock:
            self._state = ContextState.TERMINATED
        logger.debug(
            "feature_flags_context_stopped",
            identity=self.identity.unique_id,
            clean=stopped,
        )

    @property
    def state(self) -> ContextState:
        return self._state

    @property
    def is_shutdown(self) -> bool:
        return self._state in (ContextState.SHUTTING_DOWN, ContextState.TERMINATED)

    @property
    def refresh_interval(self) -> float:
        """Current interval between scheduled refreshes, in seconds."""
        return self._policy.interval_seconds

    @property
    def scheduled_task(self) -> ScheduledTask | None:
        """Handle of the pending repeating refresh, or None."""
        return self._policy.task

    @property
    def scheduler(self) -> SchedulerBackend:
        return self._scheduler

    @property
    def snapshot_version(self) -> int:
        """Number of snapshots installed (priming included)."""
        return self._store.version

    def __repr__(self) -> str:
        return (
            f"FeatureFlagsContext(identity={self.identity.unique_id!r}, "
            f"state={self._state.value}, flags={len(self._store)})"
        )
