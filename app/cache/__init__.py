"""
Stale-while-revalidate cache with deduplicated background refresh.
"""
from .core import CacheEntry, FreshnessPolicy, Snapshot, SnapshotStatus
from .errors import CacheError, CacheStoreError, ProducerError, SchedulerError
from .store import CacheStore, MemoryCacheStore, SqlCacheStore
from .scheduler import Scheduler, ThreadScheduler, refresh_job_key
from .coordinator import RefreshCoordinator, ValueProducer

__all__ = [
    # Core types
    "CacheEntry",
    "FreshnessPolicy",
    "Snapshot",
    "SnapshotStatus",
    # Errors
    "CacheError",
    "CacheStoreError",
    "ProducerError",
    "SchedulerError",
    # Stores
    "CacheStore",
    "MemoryCacheStore",
    "SqlCacheStore",
    # Scheduling
    "Scheduler",
    "ThreadScheduler",
    "refresh_job_key",
    # Coordination
    "RefreshCoordinator",
    "ValueProducer",
]
