"""
CRUD operations for cache records
"""
from typing import Optional

from sqlalchemy.orm import Session

from app.models import CacheRecord


def get_live_record(db: Session, key: str, now: float) -> Optional[CacheRecord]:
    """
    Get a cache record that has not passed its expiry
    """
    return (
        db.query(CacheRecord)
        .filter(CacheRecord.key == key, CacheRecord.expires_at > now)
        .first()
    )


def upsert_record(
    db: Session,
    key: str,
    value: Optional[str],
    created_at: float,
    expires_at: float,
    last_error: Optional[str] = None,
) -> CacheRecord:
    """
    Insert or replace the whole record for a key
    """
    record = db.merge(
        CacheRecord(
            key=key,
            value=value,
            created_at=created_at,
            expires_at=expires_at,
            last_error=last_error,
        )
    )
    db.commit()
    return record


def delete_record(db: Session, key: str) -> bool:
    """
    Delete the record for a key
    Returns True if a row was removed
    """
    deleted = db.query(CacheRecord).filter(CacheRecord.key == key).delete()
    db.commit()
    return deleted > 0


def purge_expired(db: Session, now: float) -> int:
    """
    Delete all records past their expiry
    """
    deleted = db.query(CacheRecord).filter(CacheRecord.expires_at <= now).delete()
    db.commit()
    return deleted
