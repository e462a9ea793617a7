"""
SQLAlchemy ORM models for the FlagPilot preference store.
"""
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String

from flagpilot.db.database import Base


class Preference(Base):
    """A single boolean preference, keyed by its namespaced string key."""
    __tablename__ = "preferences"

    key = Column(String(255), primary_key=True)
    value = Column(Boolean, nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
