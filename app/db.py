"""
Database connection and setup
SQLite (or any SQLAlchemy URL) for the persistent cache store
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.models import Base

logger = logging.getLogger("db")


def make_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL
    SQLite connections are shared across threads (readers and refresh jobs)
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # Needed for SQLite
    return create_engine(database_url, connect_args=connect_args, echo=echo)


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """
    Initialize database - create all tables
    Safe to call multiple times (won't recreate existing tables)
    """
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at: {engine.url}")
