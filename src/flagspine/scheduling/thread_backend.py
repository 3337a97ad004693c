"""Threading-based fixed-rate scheduler backend.

This is the DEFAULT backend for flag refresh. It uses Python's stdlib
threading module and has no external dependencies.

┌──────────────────────────────────────────────────────────────────────────────┐
│  THREAD BACKEND ARCHITECTURE                                                  │
│                                                                               │
│  ┌────────────────────────────────────────────────────────────────────┐      │
│  │                    ThreadSchedulerBackend                          │      │
│  │                                                                    │      │
│  │   schedule_at_fixed_rate(cb, interval)                             │      │
│  │      │  replaces + cancels the current ScheduledTask               │      │
│  │      ▼                                                             │      │
│  │   ┌─────────────────────────────────────────────────────────┐     │      │
│  │   │              Daemon Thread (loop)                       │     │      │
│  │   │                                                         │     │      │
│  │   │   with cond:                                            │     │      │
│  │   │       wait until task due / replaced / shutdown         │     │      │
│  │   │   try: task.callback()        ◄─── lock NOT held        │     │      │
│  │   │   except Exception: log       ◄─── loop survives        │     │      │
│  │   │   if not task.cancelled: next_run += interval           │     │      │
│  │   └─────────────────────────────────────────────────────────┘     │      │
│  │                                                                    │      │
│  │   shutdown(grace)                                                  │      │
│  │      │                                                             │      │
│  │      ▼                                                             │      │
│  │   cancel task, notify, thread.join(timeout=grace)                  │      │
│  └────────────────────────────────────────────────────────────────────┘      │
│                                                                               │
│  Key Design Decisions:                                                        │
│  1. Daemon thread — doesn't block process exit                               │
│  2. Condition-based wakeup — reschedule and shutdown take effect at once     │
│  3. Callback runs without the lock — it may reschedule its own task          │
│  4. Cancel never interrupts a running callback                               │
└──────────────────────────────────────────────────────────────────────────────┘

A thread that is still busy when the grace period expires cannot be killed
from Python. It is abandoned as a daemon and exits when its callback
returns; any reschedule it attempts is ignored.
"""

from __future__ import annotations

import threading
import time
from datetime import UTC, datetime
from typing import Any

from flagspine.core.logging import get_logger

from .protocol import BackendHealth, TaskCallback

logger = get_logger(__name__)


class ScheduledTask:
    """Handle to the currently scheduled repeating work.

    Cancelling a task prevents future runs; a run already in progress
    finishes normally.
    """

    def __init__(
        self,
        callback: TaskCallback,
        interval_seconds: float,
        next_run: float,
        cond: threading.Condition,
    ) -> None:
        self.callback = callback
        self.interval_seconds = interval_seconds
        self.next_run = next_run
        self._cond = cond
        self._cancelled = False

    def cancel(self) -> bool:
        """Cancel future runs. Returns False if already cancelled."""
        with self._cond:
            if self._cancelled:
                return False
            self._cancelled = True
            self._cond.notify_all()
            return True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def delay_seconds(self) -> float:
        """Seconds until the next run (0 when overdue)."""
        return max(0.0, self.next_run - time.monotonic())

    def __repr__(self) -> str:
        return (
            f"ScheduledTask(interval={self.interval_seconds}s, "
            f"cancelled={self._cancelled})"
        )


class ThreadSchedulerBackend:
    """Single-thread fixed-rate scheduler.

    Holds at most one live :class:`ScheduledTask`. Scheduling a new task
    cancels the previous one. The worker thread starts lazily on the first
    schedule call.

    Example:
        >>> backend = ThreadSchedulerBackend(thread_name="flags-wh-1")
        >>> task = backend.schedule_at_fixed_rate(refresh, interval_seconds=900)
        >>> # ... later ...
        >>> backend.shutdown(grace_seconds=5.0)
    """

    name = "thread"

    def __init__(self, thread_name: str = "flagspine-refresh") -> None:
        self._thread_name = thread_name
        self._cond = threading.Condition()
        self._task: ScheduledTask | None = None
        self._thread: threading.Thread | None = None
        self._shutdown = False
        self._tick_count = 0
        self._last_tick: datetime | None = None

    def schedule_at_fixed_rate(
        self,
        callback: TaskCallback,
        interval_seconds: float,
        initial_delay_seconds: float | None = None,
    ) -> ScheduledTask | None:
        """Schedule ``callback`` every ``interval_seconds``.

        The first run happens after ``initial_delay_seconds`` (defaults to
        one full interval), counted from now.

        Returns:
            The new task handle, or None if the backend is shut down.
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive: {interval_seconds}")
        delay = interval_seconds if initial_delay_seconds is None else initial_delay_seconds

        with self._cond:
            if self._shutdown:
                logger.debug("schedule_ignored_after_shutdown", thread=self._thread_name)
                return None

            if self._task is not None:
                self._task._cancelled = True
            task = ScheduledTask(callback, interval_seconds, time.monotonic() + delay, self._cond)
            self._task = task

            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._loop, daemon=True, name=self._thread_name
                )
                self._thread.start()

            self._cond.notify_all()
            return task

    def _next_due(self) -> ScheduledTask | None:
        """Block until the current task is due. None means shut down."""
        with self._cond:
            while not self._shutdown:
                task = self._task
                if task is None or task.cancelled:
                    self._cond.wait()
                    continue
                delay = task.next_run - time.monotonic()
                if delay > 0:
                    # Condition.wait overflows past TIMEOUT_MAX; wake early and re-check
                    self._cond.wait(min(delay, threading.TIMEOUT_MAX))
                    continue
                self._tick_count += 1
                self._last_tick = datetime.now(UTC)
                return task
            return None

    def _loop(self) -> None:
        logger.debug("scheduler_thread_started", thread=self._thread_name)
        while (task := self._next_due()) is not None:
            try:
                task.callback()
            except Exception:
                logger.exception("scheduled_task_failed", thread=self._thread_name)

            with self._cond:
                if not task.cancelled:
                    task.next_run = max(task.next_run + task.interval_seconds, time.monotonic())
        logger.debug("scheduler_thread_stopped", thread=self._thread_name)

    def shutdown(self, grace_seconds: float = 5.0) -> bool:
        """Cancel the current task and stop the worker thread.

        Idempotent. Waits up to ``grace_seconds`` for an in-flight callback
        on the first call only.

        Returns:
            True if no worker thread is left alive.
        """
        with self._cond:
            already = self._shutdown
            self._shutdown = True
            if self._task is not None:
                self._task._cancelled = True
            self._cond.notify_all()
            thread = self._thread

        if thread is None or thread is threading.current_thread():
            # Called from inside a callback: the loop exits once it returns
            return True
        if already:
            return not thread.is_alive()

        thread.join(timeout=grace_seconds)
        if thread.is_alive():
            logger.warning(
                "scheduler_thread_did_not_stop",
                thread=self._thread_name,
                grace_seconds=grace_seconds,
            )
            return False
        return True

    def health(self) -> dict[str, Any]:
        """Return backend health status.

        Returns:
            dict with healthy, backend, tick_count, last_tick, interval_seconds
        """
        return self.get_health().to_dict()

    def get_health(self) -> BackendHealth:
        """Return structured health status."""
        task = self._task
        return BackendHealth(
            healthy=self.is_running,
            backend=self.name,
            tick_count=self._tick_count,
            last_tick=self._last_tick,
            extra={
                "interval_seconds": task.interval_seconds if task else None,
                "shutdown": self._shutdown,
            },
        )

    @property
    def is_running(self) -> bool:
        """Check if the worker thread is alive and accepting work."""
        return not self._shutdown and self._thread is not None and self._thread.is_alive()

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    @property
    def thread(self) -> threading.Thread | None:
        return self._thread

    @property
    def current_task(self) -> ScheduledTask | None:
        """The live task, or None if nothing is scheduled."""
        task = self._task
        if task is None or task.cancelled:
            return None
        return task

    @property
    def tick_count(self) -> int:
        """Get number of task runs started."""
        return self._tick_count

    @property
    def last_tick(self) -> datetime | None:
        """Get timestamp of last task run."""
        return self._last_tick
