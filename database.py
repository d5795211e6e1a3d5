"""Database module for wei.

This module defines SQLAlchemy models and session factory construction.
There is no module-level engine: callers build a session factory with
``build_session_factory`` and pass it to the components that need it.
IMPORTANT: all timestamps are timezone-aware UTC datetime objects, NOT strings.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    JSON,
    String,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

from config import settings

# SQLAlchemy Base
Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """DateTime column that always hands back aware UTC datetimes.

    SQLite drops tzinfo on the way in, so naive values read back are UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Person(Base):
    """Someone the user wants to reach out to periodically.

    ``sort_order`` is an ordering key only: smaller values are more "due".
    """

    __tablename__ = "people"

    id = Column(String, primary_key=True, doc="Unique person ID (UUID)")
    name = Column(String, nullable=True, doc="Free-text name, may be empty or NULL")
    sort_order = Column(
        UTCDateTime(),
        nullable=False,
        index=True,
        doc="Timestamp used as list position key (ascending)"
    )

    def __repr__(self):
        """String representation"""
        return f"<Person(id={self.id}, name={self.name!r}, sort_order={self.sort_order})>"


class PendingNotification(Base):
    """A pending local notification held by the notification center."""

    __tablename__ = "pending_notifications"

    id = Column(String, primary_key=True, doc="Request identifier (random UUID)")

    # Content
    title = Column(String, nullable=False, default="")
    subtitle = Column(String, nullable=False, default="")
    sound = Column(String, nullable=True, doc="Sound name, NULL for silent")
    user_info = Column(JSON, default=dict, doc="Free-form payload (contact name etc.)")

    # Trigger
    trigger_type = Column(String, nullable=False, doc="'interval' or 'calendar'")
    trigger = Column(JSON, nullable=False, doc="Trigger parameters")
    repeats = Column(Boolean, nullable=False, default=False)
    next_fire_at = Column(UTCDateTime(), nullable=False, index=True)

    # Delivery bookkeeping
    delivered_count = Column(Integer, nullable=False, default=0)
    last_delivered_at = Column(UTCDateTime(), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False)

    def __repr__(self):
        """String representation"""
        return (
            f"<PendingNotification(id={self.id}, trigger={self.trigger_type}, "
            f"next_fire_at={self.next_fire_at}, repeats={self.repeats})>"
        )


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """Create an engine for the given URL (defaults to settings.DATABASE_URL).

    In-memory SQLite URLs share a single connection so every session sees
    the same database.
    """
    url = database_url or settings.DATABASE_URL
    kwargs = {"echo": False}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def init_db(engine: Engine) -> None:
    """Create all tables."""
    Base.metadata.create_all(bind=engine)


def build_session_factory(database_url: Optional[str] = None) -> sessionmaker:
    """Create engine, make sure tables exist, and return a session factory."""
    engine = create_db_engine(database_url)
    init_db(engine)
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
