"""
SQLAlchemy-backed preference store.

Persists each preference as one row of the ``preferences`` table. Any database
SQLAlchemy supports will do; the default configuration uses a local SQLite file.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Set

from sqlalchemy import select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from flagpilot.db.database import create_session_factory, create_store_engine, create_tables
from flagpilot.db.models import Preference
from flagpilot.errors import StoreOperationError, StoreUnavailableError

logger = logging.getLogger(__name__)


class SqlPreferenceStore:
    """
    KeyValueStore implementation on top of a SQLAlchemy engine.

    The engine is created lazily by open(), which also creates the
    ``preferences`` table if it does not exist yet.
 An in-memory SQLite URL
    keeps its data only until close(), so it suits tests and single-process
    runs, not the one-shot CLI.

    Attributes:
        database_url: SQLAlchemy URL of the backing database
    """

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize the store without touching the database.

        Args:
            database_url: SQLAlchemy database URL (e.g. "sqlite:///./flagpilot.db")
            echo: Log every SQL statement (passed through to the engine)
        """
        self.database_url = database_url
        self._echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> None:
        """
        Create the engine and the preferences table.

        Raises:
            StoreUnavailableError: If the database cannot be reached or the
                table cannot be created.
        """
        if self._engine is not None:
            return

        engine = None
        try:
            engine = create_store_engine(self.database_url, echo=self._echo)
            create_tables(engine)
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            if engine is not None:
                engine.dispose()
            logger.error(f"Failed to open preference store: {str(e)}")
            raise StoreUnavailableError(str(e)) from e

        self._engine = engine
        self._session_factory = create_session_factory(engine)

    def close(self) -> None:
        """Dispose of the engine and its connection pool (in-memory data is lost)."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        if self._session_factory is None:
            raise StoreUnavailableError("Preference store is not open")

        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Preference store {operation} failed: {str(e)}")
            raise StoreOperationError(operation, str(e)) from e
        finally:
            session.close()

    def get_boolean(self, key: str) -> Optional[bool]:
        with self._session("read") as session:
            preference = session.get(Preference, key)
            return None if preference is None else bool(preference.value)

    def set_boolean(self, key: str, value: bool) -> None:
        with self._session("write") as session:
            preference = session.get(Preference, key)
            if preference is None:
                session.add(Preference(key=key, value=bool(value)))
            else:
                preference.value = bool(value)
            session.commit()

    def remove_key(self, key: str) -> bool:
        with self._session("delete") as session:
            preference = session.get(Preference, key)
            if preference is None:
                return False
            session.delete(preference)
            session.commit()
            return True

    def list_keys(self) -> Set[str]:
        with self._session("list") as session:
            return set(session.scalars(select(Preference.key)).all())

    def ping(self) -> bool:
        if self._engine is None:
            return False
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False
