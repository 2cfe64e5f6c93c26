"""
Unit tests for the timer-thread scheduler.
"""
import threading
import time

import pytest

from app.cache import (
    FreshnessPolicy,
    MemoryCacheStore,
    RefreshCoordinator,
    SchedulerError,
    ThreadScheduler,
    refresh_job_key,
)
from conftest import StubProducer, speed


@pytest.fixture
def thread_scheduler():
    scheduler = ThreadScheduler()
    yield scheduler
    scheduler.shutdown()


def _wait_until_idle(scheduler, job_key, timeout=2.0):
    deadline = time.monotonic() + timeout
    while scheduler.is_scheduled(job_key) and time.monotonic() < deadline:
        time.sleep(0.01)
    return not scheduler.is_scheduled(job_key)


class TestThreadScheduler:
    """Tests for single-slot scheduling and marker clearing."""

    def test_runs_job_once(self, thread_scheduler):
        ran = threading.Event()

        assert thread_scheduler.schedule_once("job", 0, ran.set) is True

        assert ran.wait(2.0)
        assert _wait_until_idle(thread_scheduler, "job")

    def test_second_schedule_is_rejected_while_pending(self, thread_scheduler):
        release = threading.Event()
        calls = []

        def job():
            calls.append(1)
            release.wait(2.0)

        assert thread_scheduler.schedule_once("job", 0, job) is True
        assert thread_scheduler.schedule_once("job", 0, job) is False
        assert thread_scheduler.is_scheduled("job")

        release.set()
        assert _wait_until_idle(thread_scheduler, "job")
        assert calls == [1]

    def test_failing_job_clears_marker(self, thread_scheduler):
        def job():
            raise RuntimeError("boom")

        thread_scheduler.schedule_once("job", 0, job)

        assert _wait_until_idle(thread_scheduler, "job")
        assert thread_scheduler.schedule_once("job", 0, lambda: None) is True

    def test_concurrent_schedulers_collapse(self, thread_scheduler):
        barrier = threading.Barrier(10)
        results = []

        def worker():
            barrier.wait()
            results.append(thread_scheduler.schedule_once("job", 60, lambda: None))

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert thread_scheduler.pending() == ["job"]

    def test_shutdown_cancels_waiting_jobs(self):
        scheduler = ThreadScheduler()
        ran = threading.Event()
        scheduler.schedule_once("job", 60, ran.set)

        assert scheduler.shutdown() == 1
        assert scheduler.pending() == []
        assert not ran.is_set()
        with pytest.raises(SchedulerError):
            scheduler.schedule_once("job", 0, ran.set)


class TestCoordinatorWithThreadScheduler:
    """The coordinator driving a real scheduler end to end."""

    def test_first_read_triggers_background_refresh(self, thread_scheduler):
        store = MemoryCacheStore()
        policy = FreshnessPolicy(ttl=60, schedule_delay=0, producer_timeout=1)
        coordinator = RefreshCoordinator(store, thread_scheduler, StubProducer(speed(12.0)), policy)

        assert coordinator.read("k").is_pending
        assert _wait_until_idle(thread_scheduler, refresh_job_key("k"))

        snapshot = coordinator.read("k")
        assert not snapshot.is_pending
        assert snapshot.value == speed(12.0)


def test_timer_fired_during_shutdown_does_not_run_job():
    scheduler = ThreadScheduler()
    ran = threading.Event()
    scheduler.schedule_once("job", 60, ran.set)

    assert scheduler.shutdown() == 1
    # A timer that fired just before cancel() still reaches _run
    scheduler._run("job", ran.set)

    assert not ran.is_set()
    assert scheduler.pending() == []
