"""Tests for ThreadSchedulerBackend."""

import threading
import time

import pytest
from structlog.testing import capture_logs

from flagspine.scheduling import ThreadSchedulerBackend
from flagspine.scheduling.protocol import SchedulerBackend


@pytest.fixture
def backend():
    b = ThreadSchedulerBackend(thread_name="test-refresh")
    yield b
    b.shutdown(grace_seconds=1.0)


class TestThreadSchedulerBackend:
    """Test ThreadSchedulerBackend implementation."""

    def test_implements_protocol(self):
        """Backend implements SchedulerBackend protocol."""
        backend = ThreadSchedulerBackend()
        assert isinstance(backend, SchedulerBackend)
        assert backend.name == "thread"

    def test_thread_starts_lazily(self, backend):
        """No thread exists until something is scheduled."""
        assert backend.thread is None
        assert not backend.is_running

        backend.schedule_at_fixed_rate(lambda: None, interval_seconds=60)
        assert backend.thread is not None
        assert backend.thread.name == "test-refresh"
        assert backend.thread.daemon is True
        assert backend.is_running

    def test_repeats(self, backend, wait):
        """The callback runs repeatedly at the interval."""
        ticks = []
        backend.schedule_at_fixed_rate(lambda: ticks.append(1), interval_seconds=0.02)
        assert wait(lambda: len(ticks) >= 3)
        assert backend.tick_count >= 3

    def test_first_run_after_full_interval(self, backend):
        """By default the first run waits one interval."""
        ticks = []
        task = backend.schedule_at_fixed_rate(lambda: ticks.append(1), interval_seconds=30)
        time.sleep(0.05)
        assert ticks == []
        assert 29 < task.delay_seconds() <= 30

    def test_interval_beyond_timeout_max(self, backend):
        """Intervals longer than threading.TIMEOUT_MAX do not kill the thread."""
        interval = threading.TIMEOUT_MAX * 2
        task = backend.schedule_at_fixed_rate(lambda: None, interval_seconds=interval)
        time.sleep(0.05)

        assert backend.thread.is_alive()
        assert backend.health()["healthy"] is True
        assert task.delay_seconds() > threading.TIMEOUT_MAX

    def test_long_wait_still_sees_reschedule(self, backend, wait):
        """A thread parked on a huge interval picks up a shorter one."""
        ticks = []
        backend.schedule_at_fixed_rate(lambda: None, interval_seconds=10**10)
        time.sleep(0.02)
        backend.schedule_at_fixed_rate(lambda: ticks.append(1), interval_seconds=0.02)
        assert wait(lambda: len(ticks) >= 1)

    def test_initial_delay(self, backend, wait):
        """initial_delay_seconds overrides the first wait."""
        ticks = []
        backend.schedule_at_fixed_rate(
            lambda: ticks.append(1), interval_seconds=60, initial_delay_seconds=0
        )
        assert wait(lambda: len(ticks) == 1)

    def test_survives_callback_exceptions(self, backend, wait):
        """An exception in one run does not stop later runs."""
        calls = []

        def flaky():
            calls.append(1)
            raise RuntimeError("boom")

        with capture_logs() as logs:
            backend.schedule_at_fixed_rate(flaky, interval_seconds=0.02)
            assert wait(lambda: len(calls) >= 3)

        assert backend.is_running
        assert any(e["event"] == "scheduled_task_failed" for e in logs)

    @pytest.mark.parametrize("interval", [0, -1])
    def test_rejects_non_positive_interval(self, backend, interval):
        """Intervals must be positive."""
        with pytest.raises(ValueError):
            backend.schedule_at_fixed_rate(lambda: None, interval_seconds=interval)


class TestReplaceAndCancel:
    """Only one task is live at a time."""

    def test_schedule_replaces_previous(self, backend, wait):
        """Scheduling again cancels the previous task."""
        old_ticks, new_ticks = [], []
        old = backend.schedule_at_fixed_rate(lambda: old_ticks.append(1), interval_seconds=60)
        new = backend.schedule_at_fixed_rate(
            lambda: new_ticks.append(1), interval_seconds=0.02
        )

        assert old.cancelled
        assert not new.cancelled
        assert backend.current_task is new
        assert wait(lambda: len(new_ticks) >= 2)
        assert old_ticks == []

    def test_cancel(self, backend):
        """A cancelled task never runs; cancel twice returns False."""
        ticks = []
        task = backend.schedule_at_fixed_rate(
            lambda: ticks.append(1), interval_seconds=0.02
        )
        assert task.cancel() is True
        assert task.cancel() is False
        time.sleep(0.1)
        assert ticks == []
        assert backend.current_task is None

    def test_reschedule_from_callback(self, backend, wait):
        """A callback may replace its own task."""
        ticks = []

        def slow_down():
            ticks.append(1)
            backend.schedule_at_fixed_rate(slow_down, interval_seconds=60)

        backend.schedule_at_fixed_rate(slow_down, interval_seconds=0.02)
        assert wait(lambda: len(ticks) == 1)
        time.sleep(0.1)
        assert len(ticks) == 1
        assert backend.current_task.interval_seconds == 60

    def test_cancel_does_not_interrupt_running(self, backend, wait):
        """Cancelling during a run lets that run finish."""
        started = threading.Event()
        finished = []

        def slow():
            started.set()
            time.sleep(0.1)
            finished.append(1)

        task = backend.schedule_at_fixed_rate(slow, interval_seconds=0.02)
        assert started.wait(1.0)
        task.cancel()
        assert wait(lambda: finished == [1])
        time.sleep(0.1)
        assert finished == [1]


class TestShutdown:
    """Shutdown stops the worker within the grace period."""

    def test_shutdown_stops_thread(self, wait):
        """shutdown() returns True once the worker has exited."""
        backend = ThreadSchedulerBackend()
        ticks = []
        backend.schedule_at_fixed_rate(lambda: ticks.append(1), interval_seconds=0.02)
        assert wait(lambda: len(ticks) >= 1)

        assert backend.shutdown(grace_seconds=1.0) is True
        assert not backend.thread.is_alive()
        assert not backend.is_running
        assert backend.is_shutdown

    def test_shutdown_without_thread(self):
        """Shutting down an unused backend succeeds."""
        assert ThreadSchedulerBackend().shutdown() is True

    def test_shutdown_idempotent(self):
        """A second shutdown is a no-op that still reports success."""
        backend = ThreadSchedulerBackend()
        backend.schedule_at_fixed_rate(lambda: None, interval_seconds=60)
        assert backend.shutdown(grace_seconds=1.0) is True
        assert backend.shutdown(grace_seconds=1.0) is True

    def test_schedule_after_shutdown_ignored(self):
        """Scheduling on a shut-down backend returns None."""
        backend = ThreadSchedulerBackend()
        backend.shutdown()
        assert backend.schedule_at_fixed_rate(lambda: None, interval_seconds=1) is None
        assert backend.thread is None

    def test_grace_exceeded(self, wait):
        """A callback outliving the grace period makes shutdown return False."""
        backend = ThreadSchedulerBackend()
        started = threading.Event()
        release = threading.Event()

        def stuck():
            started.set()
            release.wait(2.0)

        backend.schedule_at_fixed_rate(stuck, interval_seconds=60, initial_delay_seconds=0)
        assert started.wait(1.0)

        with capture_logs() as logs:
            assert backend.shutdown(grace_seconds=0.05) is False
        assert any(e["event"] == "scheduler_thread_did_not_stop" for e in logs)

        release.set()
        assert wait(lambda: not backend.thread.is_alive())
        assert backend.shutdown() is True

    def test_shutdown_from_callback(self, wait):
        """A callback may shut down its own backend."""
        backend = ThreadSchedulerBackend()
        results = []

        def stop_self():
            results.append(backend.shutdown())

        backend.schedule_at_fixed_rate(stop_self, interval_seconds=60, initial_delay_seconds=0)
        assert wait(lambda: results == [True])
        assert wait(lambda: not backend.thread.is_alive())


class TestHealth:
    """Health reporting."""

    def test_health_before_schedule(self):
        """Health is unhealthy before anything is scheduled."""
        health = ThreadSchedulerBackend().health()

        assert health["healthy"] is False
        assert health["backend"] == "thread"
        assert health["tick_count"] == 0
        assert health["last_tick"] is None
        assert health["interval_seconds"] is None

    def test_health_after_ticks(self, backend, wait):
        """Health reflects ticks and the live interval."""
        backend.schedule_at_fixed_rate(lambda: None, interval_seconds=0.02)
        assert wait(lambda: backend.tick_count >= 1)

        health = backend.health()
        assert health["healthy"] is True
        assert health["tick_count"] >= 1
        assert health["last_tick"] is not None
        assert health["interval_seconds"] == 0.02
        assert health["shutdown"] is False
