"""Scheduler package for flagspine.

One daemon thread per flag context runs that context's refresh cycle at a
fixed rate. The interval can change at any time (the server dictates it),
so the backend exposes an explicit task handle that is cancelled and
replaced on every reschedule.

Tags:
    flagspine, scheduling, threading, fixed-rate, reschedule
"""

from __future__ import annotations

from .protocol import BackendHealth, SchedulerBackend, TaskCallback
from .thread_backend import ScheduledTask, ThreadSchedulerBackend

__all__ = [
    "BackendHealth",
    "SchedulerBackend",
    "ScheduledTask",
    "TaskCallback",
    "ThreadSchedulerBackend",
]
