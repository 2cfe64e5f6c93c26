"""
Core cache data structures.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class SnapshotStatus(Enum):
    """Status reported to readers."""
    PENDING = "pending"   # No value produced yet, refresh scheduled
    OK = "ok"             # Serving a stored value (fresh or stale)


@dataclass(frozen=True)
class FreshnessPolicy:
    """
    Timing configuration for one cache.

    ttl: age (seconds) after which an entry is stale
    store_expiry: age after which the store drops the entry, must exceed ttl
    schedule_delay: wait before a scheduled refresh runs
    producer_timeout: bound on one producer invocation
    """
    ttl: float = 3600
    store_expiry: Optional[float] = None
    schedule_delay: float = 10
    producer_timeout: float = 10

    def __post_init__(self):
        if self.ttl <= 0:
            raise ValueError(f"ttl must be positive, got {self.ttl}")
        if self.store_expiry is None:
            # Frozen dataclass, so bypass __setattr__
            object.__setattr__(self, "store_expiry", self.ttl * 2)
        if self.store_expiry <= self.ttl:
            raise ValueError(
                f"store_expiry ({self.store_expiry}) must be greater than ttl ({self.ttl})"
            )
        if self.schedule_delay < 0:
            raise ValueError(f"schedule_delay must be >= 0, got {self.schedule_delay}")
        if self.producer_timeout <= 0:
            raise ValueError(f"producer_timeout must be positive, got {self.producer_timeout}")


@dataclass
class CacheEntry:
    """
    A stored value with the time of the refresh that produced it.
    """
    value: Any
    created_at: float
    last_error: Optional[str] = None

    def age_seconds(self, now: float) -> float:
        """Seconds since the entry was written."""
        return now - self.created_at

    def is_stale(self, now: float, ttl: float) -> bool:
        """Check if the entry has outlived its freshness window."""
        return self.age_seconds(now) >= ttl


@dataclass(frozen=True)
class Snapshot:
    """
    What a reader gets back. Bookkeeping such as created_at is never included.
    """
    value: Any
    status: SnapshotStatus
    last_error: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status is SnapshotStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        """
        Flatten into a JSON response body.

        A mapping value is merged with the status fields. Its own "status"
        and "last_error" keys, if any, are overwritten by the snapshot's.
        """
        if isinstance(self.value, dict):
            result = dict(self.value)
        else:
            result = {"value": self.value}
        result["status"] = self.status.value
        if self.last_error:
            result["last_error"] = self.last_error
        return result
