"""Scheduler backend protocol.

┌──────────────────────────────────────────────────────────────────────────────┐
│  SCHEDULER BACKEND PROTOCOL                                                   │
│                                                                               │
│  A backend owns exactly one timing thread and at most one live repeating     │
│  task. The flag context decides WHAT runs (a refresh cycle) and at WHICH     │
│  interval; the backend decides WHEN it runs.                                 │
│                                                                               │
│   FeatureFlagsContext                      ThreadSchedulerBackend            │
│   ───────────────────                      ──────────────────────            │
│   _on_interval_change(ttl)                                                   │
│                     ── cancel(old) ──────► ScheduledTask (old)               │
│                     ── schedule_at_fixed_rate(_refresh_once, ttl) ─► new task│
│   shutdown()        ── shutdown(grace) ──► stop thread, join(grace)          │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .thread_backend import ScheduledTask


TaskCallback = Callable[[], None]


@runtime_checkable
class SchedulerBackend(Protocol):
    """Protocol for a single-thread repeating-task scheduler.

    Implementations:
        - ThreadSchedulerBackend: stdlib threading (default)
    """

    name: str

    def schedule_at_fixed_rate(
        self,
        callback: TaskCallback,
        interval_seconds: float,
        initial_delay_seconds: float | None = None,
    ) -> ScheduledTask | None:
        """Schedule ``callback`` to repeat every ``interval_seconds``.

        Returns None when the backend has already been shut down.
        """
        ...

    def shutdown(self, grace_seconds: float = 5.0) -> bool:
        """Stop the scheduler thread.

        Waits up to ``grace_seconds`` for a running callback to finish.
        Returns True when the thread stopped within the grace period.
        """
        ...

    def health(self) -> dict[str, Any]:
        """Return backend health status."""
        ...


@dataclass
class BackendHealth:
    """Structured backend health response."""

    healthy: bool
    backend: str
    tick_count: int = 0
    last_tick: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "tick_count": self.tick_count,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            **self.extra,
        }
