"""
Stale-while-revalidate reads with single-flight background refresh.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from .core import CacheEntry, FreshnessPolicy, Snapshot, SnapshotStatus
from .errors import CacheStoreError, SchedulerError
from .scheduler import Scheduler, refresh_job_key
from .store import CacheStore

logger = logging.getLogger("cache.coordinator")


class ValueProducer(Protocol):
    """Computes the value stored under a cache key."""

    def default_value(self) -> Any:
        """Placeholder served before any value exists, or after a failure."""
        ...

    def produce(self, timeout: float) -> Any: ...


class RefreshCoordinator:
    """
    Serves whatever the store holds and lazily schedules refreshes.

    - Missing entry: serve the producer's default value with status "pending"
    - Stale entry: serve it anyway with status "ok", schedule a refresh
    - At most one refresh job per key is pending at a time
    - read() never waits on the producer; refresh() never raises

    Usage:
        coordinator = RefreshCoordinator(store, scheduler, producer, FreshnessPolicy())
        snapshot = coordinator.read("site_speed_api_data")
    """

    def __init__(
        self,
        store: CacheStore,
        scheduler: Scheduler,
        producer: ValueProducer,
        policy: Optional[FreshnessPolicy] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._scheduler = scheduler
        self._producer = producer
        self._policy = policy or FreshnessPolicy()
        self._clock = clock

        # Guards check-then-schedule; one lock for all keys keeps state bounded
        self._schedule_lock = threading.Lock()

        self._stats_lock = threading.Lock()
        self._stats = {
            "hits_fresh": 0,
            "hits_stale": 0,
            "misses": 0,
            "schedules": 0,
            "schedules_skipped": 0,
            "schedule_errors": 0,
            "refreshes": 0,
            "refresh_failures": 0,
            "store_errors": 0,
        }

    @property
    def policy(self) -> FreshnessPolicy:
        return self._policy

    def read(self, key: str) -> Snapshot:
        """
        Return the best available snapshot for key.

        Store read failures count as a miss.
        """
        try:
            entry = self._store.get(key)
        except CacheStoreError as e:
            logger.warning(f"Cache read failed, treating as miss: {key} - {e}")
            self._incr("store_errors")
            entry = None

        if entry is None:
            logger.info(f"CACHE MISS: {key}")
            self._incr("misses")
            self.ensure_refresh_scheduled(key)
            return Snapshot(
                value=self._producer.default_value(),
                status=SnapshotStatus.PENDING,
            )

        now = self._clock()
        if entry.is_stale(now, self._policy.ttl):
            logger.info(
                f"CACHE HIT (stale, revalidating): {key} "
                f"[age={entry.age_seconds(now):.1f}s]"
            )
            self._incr("hits_stale")
            self.ensure_refresh_scheduled(key)
        else:
            logger.debug(f"CACHE HIT (fresh): {key} [age={entry.age_seconds(now):.1f}s]")
            self._incr("hits_fresh")

        return Snapshot(
            value=entry.value,
            status=SnapshotStatus.OK,
            last_error=entry.last_error,
        )

    def ensure_refresh_scheduled(self, key: str) -> bool:
        """
        Schedule a refresh of key unless one is already pending.

        Returns:
            True if this call scheduled a job
        """
        job_key = refresh_job_key(key)
        try:
            with self._schedule_lock:
                if self._scheduler.is_scheduled(job_key):
                    logger.debug(f"Refresh already pending: {key}")
                    self._incr("schedules_skipped")
                    return False
                scheduled = self._scheduler.schedule_once(
                    job_key,
                    self._policy.schedule_delay,
                    lambda: self.refresh(key),
                )
        except SchedulerError as e:
            logger.warning(f"Could not schedule refresh for {key}: {e}")
            self._incr("schedule_errors")
            return False

        if scheduled:
            logger.info(f"Scheduled refresh for {key} in {self._policy.schedule_delay}s")
            self._incr("schedules")
        else:
            self._incr("schedules_skipped")
        return scheduled

    def refresh(self, key: str) -> None:
        """
        Produce a new value and store it. Called by the scheduler.

        A failed or timed out producer stores the default value with
        last_error set, and created_at still moves forward.
        """
        start = self._clock()
        value, error = self._produce()
        entry = CacheEntry(value=value, created_at=self._clock(), last_error=error)

        self._incr("refreshes")
        if error:
            self._incr("refresh_failures")
            logger.warning(f"Refresh of {key} produced no value: {error}")

        try:
            self._store.set(key, entry, self._policy.store_expiry)
        except CacheStoreError as e:
            # Dropped for this cycle; the next stale read schedules another try
            logger.error(f"Could not store refreshed value for {key}: {e}")
            self._incr("store_errors")
            return

        logger.info(f"Refreshed {key} in {entry.created_at - start:.2f}s")

    def _produce(self) -> Tuple[Any, Optional[str]]:
        timeout = self._policy.producer_timeout
        # One thread per call so a hung producer can't starve later refreshes
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cache-producer")
        try:
            future = executor.submit(self._producer.produce, timeout)
            return future.result(timeout=timeout), None
        except FutureTimeoutError:
            return self._producer.default_value(), f"timed out after {timeout}s"
        except Exception as e:
            return self._producer.default_value(), f"{type(e).__name__}: {e}"
        finally:
            executor.shutdown(wait=False)

    def _incr(self, name: str) -> None:
        with self._stats_lock:
            self._stats[name] += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get coordinator statistics."""
        with self._stats_lock:
            stats = dict(self._stats)
        total_hits = stats["hits_fresh"] + stats["hits_stale"]
        total_reads = total_hits + stats["misses"]
        stats["hit_rate_percent"] = round(total_hits / total_reads * 100, 1) if total_reads else 0
        return stats
