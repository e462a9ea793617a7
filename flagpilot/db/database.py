"""
Database engine and session configuration for the preference store.
"""
from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# Base class for ORM models
Base = declarative_base()


def is_memory_url(database_url: str) -> bool:
    """Return True for SQLite URLs whose database lives only as long as the engine."""
    if not database_url.startswith("sqlite"):
        return False
    return ":memory:" in database_url or database_url.rstrip("/") == "sqlite:"


def create_store_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given database URL.

    SQLite URLs get check_same_thread disabled so the engine can be shared
    between the event loop and worker threads. In-memory SQLite additionally
    uses a StaticPool, otherwise every connection would see a fresh database.
    """
    kwargs: Dict[str, Any] = {"echo": echo}

    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if is_memory_url(database_url):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    return create_engine(database_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the given engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine) -> None:
    """Create all tables in the database."""
    Base.metadata.create_all(bind=engine)

