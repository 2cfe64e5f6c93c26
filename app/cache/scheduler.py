"""
Deferred one-shot job scheduling with a single pending slot per job key.
"""
import logging
import threading
from typing import Callable, Dict, List, Protocol, Set

from .errors import SchedulerError

logger = logging.getLogger("cache.scheduler")


def refresh_job_key(cache_key: str) -> str:
    """Job key used for the refresh task of a cache key."""
    return f"{cache_key}:refresh"


class Scheduler(Protocol):
    """Run a named job once, at or after a delay, unless already pending."""

    def is_scheduled(self, job_key: str) -> bool: ...

    def schedule_once(self, job_key: str, delay: float, fn: Callable[[], None]) -> bool: ...


class ThreadScheduler:
    """
    Timer-thread scheduler.

    A job key counts as scheduled from schedule_once() until the job function
    returns or raises. The check and the insert happen under one lock, so two
    callers can never both schedule the same key.
    """

    def __init__(self, thread_name_prefix: str = "cache-refresh"):
        self._pending: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()
        self._running: Set[str] = set()
        self._closed = False
        self._thread_name_prefix = thread_name_prefix

    def is_scheduled(self, job_key: str) -> bool:
        with self._lock:
            return job_key in self._pending

    def schedule_once(self, job_key: str, delay: float, fn: Callable[[], None]) -> bool:
        """
        Schedule fn to run once after delay seconds.

        Returns:
            True if scheduled, False if a job for job_key is already pending

        Raises:
            SchedulerError: If the scheduler is shut down or the timer can't start
        """
        with self._lock:
            if self._closed:
                raise SchedulerError("Scheduler is shut down")
            if job_key in self._pending:
                logger.debug(f"Already scheduled: {job_key}")
                return False

            timer = threading.Timer(delay, self._run, args=(job_key, fn))
            timer.daemon = True
            timer.name = f"{self._thread_name_prefix}:{job_key}"
            self._pending[job_key] = timer
            try:
                timer.start()
            except RuntimeError as e:
                del self._pending[job_key]
                raise SchedulerError(f"Could not start timer for {job_key}: {e}") from e

        logger.debug(f"Scheduled {job_key} in {delay}s")
        return True

    def _run(self, job_key: str, fn: Callable[[], None]) -> None:
        with self._lock:
            if job_key not in self._pending:
                # Cancelled by shutdown() after the timer fired
                logger.debug(f"Skipping cancelled job: {job_key}")
                return
            self._running.add(job_key)
        try:
            fn()
        except Exception:
            logger.exception(f"Scheduled job failed: {job_key}")
        finally:
            # Cleared on success and failure alike
            with self._lock:
                self._running.discard(job_key)
                self._pending.pop(job_key, None)

    def pending(self) -> List[str]:
        """Job keys currently scheduled or running."""
        with self._lock:
            return sorted(self._pending)

    def shutdown(self) -> int:
        """
        Cancel timers that have not fired yet. Jobs already running finish.

        Returns:
            Number of timers cancelled
        """
        with self._lock:
            self._closed = True
            cancelled = 0
            for job_key, timer in list(self._pending.items()):
                if job_key in self._running:
                    continue
                timer.cancel()
                # A cancelled timer never calls _run, so release its slot here
                self._pending.pop(job_key, None)
                cancelled += 1
        if cancelled:
            logger.info(f"Cancelled {cancelled} pending jobs")
        return cancelled
