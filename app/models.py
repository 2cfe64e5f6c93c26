"""
Database models for the site speed cache
SQLAlchemy ORM model for persisted cache entries
"""
from sqlalchemy import Column, Float, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CacheRecord(Base):
    """
    Cache record - one row per cache key
    The value column holds the producer's payload as JSON text
    """
    __tablename__ = "cache_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=True)
    created_at = Column(Float, nullable=False)
    expires_at = Column(Float, nullable=False, index=True)
    last_error = Column(String, nullable=True)

    def __repr__(self):
        return f"<CacheRecord(key='{self.key}', created_at={self.created_at}, expires_at={self.expires_at})>"
