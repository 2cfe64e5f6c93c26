"""
Shared test doubles: a manual clock, a recording scheduler and a stub producer.
"""
import threading
from typing import Callable, Dict, List

import pytest

from app.cache import FreshnessPolicy, MemoryCacheStore, RefreshCoordinator
from app.cache.errors import ProducerError


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingScheduler:
    """
    Scheduler that records jobs instead of running them.
    run_pending() fires them and clears their markers, like a real scheduler.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self._pending: Dict[str, Callable[[], None]] = {}
        self._lock = threading.Lock()

    def is_scheduled(self, job_key: str) -> bool:
        with self._lock:
            return job_key in self._pending

    def schedule_once(self, job_key: str, delay: float, fn: Callable[[], None]) -> bool:
        with self._lock:
            if job_key in self._pending:
                return False
            self._pending[job_key] = fn
            self.calls.append((job_key, delay))
            return True

    def run_pending(self) -> int:
        with self._lock:
            jobs = list(self._pending.items())
        for job_key, fn in jobs:
            try:
                fn()
            finally:
                with self._lock:
                    self._pending.pop(job_key, None)
        return len(jobs)


class StubProducer:
    """Producer returning queued values; an Exception in the queue is raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def default_value(self):
        return {"site_name": "Test Site", "speed_ms": None}

    def produce(self, timeout: float):
        self.calls += 1
        result = self.results.pop(0) if self.results else ProducerError("no result queued")
        if isinstance(result, Exception):
            raise result
        return result


def speed(ms):
    return {"site_name": "Test Site", "speed_ms": ms}


@pytest.fixture
def clock():
    return ManualClock(0.0)


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def store(clock):
    return MemoryCacheStore(clock=clock)


@pytest.fixture
def policy():
    return FreshnessPolicy(ttl=3600, store_expiry=7200, schedule_delay=10, producer_timeout=10)


@pytest.fixture
def make_coordinator(store, scheduler, policy, clock):
    """Build a coordinator around the given producer."""
    def _make(producer):
        return RefreshCoordinator(store, scheduler, producer, policy, clock=clock)
    return _make
