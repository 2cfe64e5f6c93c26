"""
Key -> CacheEntry stores with store-side expiry.

Two backends share one contract:
- MemoryCacheStore: process-local dict, lost on restart
- SqlCacheStore: SQLAlchemy table, survives restarts

Writes replace the whole entry. Concurrent writers to one key race and the
last write wins.
"""
import json
import logging
import threading
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

from sqlalchemy.exc import SQLAlchemyError

from app import crud
from app.db import init_db, make_engine, make_session_factory

from .core import CacheEntry
from .errors import CacheStoreError

logger = logging.getLogger("cache.store")


class CacheStore(Protocol):
    """Contract the coordinator relies on."""

    def get(self, key: str) -> Optional[CacheEntry]: ...

    def set(self, key: str, entry: CacheEntry, expiry: float) -> None: ...

    def delete(self, key: str) -> bool: ...


class MemoryCacheStore:
    """
    In-memory store. Every access holds one lock, so reads never see a
    partially written entry.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._store: Dict[str, Tuple[CacheEntry, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            item = self._store.get(key)
            if item is None:
                return None
            entry, expires_at = item
            if self._clock() >= expires_at:
                del self._store[key]
                return None
            return entry

    def set(self, key: str, entry: CacheEntry, expiry: float) -> None:
        with self._lock:
            self._store[key] = (entry, self._clock() + expiry)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


class SqlCacheStore:
    """
    SQLAlchemy-backed store. Values are serialized as JSON, so producers
    must return JSON-compatible payloads.

    Usage:
        store = SqlCacheStore("sqlite:///./site_speed.db")
        store.set("k", CacheEntry(value={"a": 1}, created_at=time.time()), 7200)
        entry = store.get("k")
    """

    def __init__(self, database_url: str, clock: Callable[[], float] = time.time):
        self._engine = make_engine(database_url)
        self._session_factory = make_session_factory(self._engine)
        self._clock = clock
        init_db(self._engine)

    def get(self, key: str) -> Optional[CacheEntry]:
        try:
            with self._session_factory() as db:
                record = crud.get_live_record(db, key, self._clock())
                if record is None:
                    return None
                return CacheEntry(
                    value=json.loads(record.value) if record.value is not None else None,
                    created_at=record.created_at,
                    last_error=record.last_error,
                )
        except SQLAlchemyError as e:
            raise CacheStoreError(f"Failed to read cache key {key}: {e}") from e
        except ValueError as e:
            # Corrupt JSON in the row
            raise CacheStoreError(f"Unreadable value for cache key {key}: {e}") from e

    def set(self, key: str, entry: CacheEntry, expiry: float) -> None:
        try:
            payload = json.dumps(entry.value)
        except (TypeError, ValueError) as e:
            raise CacheStoreError(f"Value for cache key {key} is not JSON serializable: {e}") from e

        try:
            with self._session_factory() as db:
                crud.upsert_record(
                    db,
                    key=key,
                    value=payload,
                    created_at=entry.created_at,
                    expires_at=self._clock() + expiry,
                    last_error=entry.last_error,
                )
        except SQLAlchemyError as e:
            raise CacheStoreError(f"Failed to write cache key {key}: {e}") from e
        logger.debug(f"Stored {key} (expires in {expiry}s)")

    def delete(self, key: str) -> bool:
        try:
            with self._session_factory() as db:
                deleted = crud.delete_record(db, key)
        except SQLAlchemyError as e:
            raise CacheStoreError(f"Failed to delete cache key {key}: {e}") from e
        if deleted:
            logger.info(f"Invalidated cache: {key}")
        return deleted

    def purge_expired(self) -> int:
        """
        Remove rows past their expiry.

        Returns:
            Number of rows removed
        """
        try:
            with self._session_factory() as db:
                count = crud.purge_expired(db, self._clock())
        except SQLAlchemyError as e:
            raise CacheStoreError(f"Failed to purge expired entries: {e}") from e
        if count:
            logger.info(f"Purged {count} expired cache entries")
        return count

    def close(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()
