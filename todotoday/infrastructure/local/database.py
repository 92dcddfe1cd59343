"""
SQLite database configuration and ORM models.

The local durable layer is a single key-value table; each of the four
collections is stored as one JSON blob under a fixed key.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from todotoday.core.config import get_settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===========================================
# ORM Models
# ===========================================


class KeyValueORM(Base):
    """Key-value ORM model."""

    __tablename__ = "key_values"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


# ===========================================
# Engine / session helpers
# ===========================================


def get_engine(database_url: str | None = None):
    """Get engine instance."""
    settings = get_settings()
    return create_engine(database_url or settings.DATABASE_URL, echo=settings.DEBUG)


def get_session_factory(engine=None):
    """Get session factory bound to `engine` (default: the configured database)."""
    engine = engine or get_engine()
    return sessionmaker(engine, expire_on_commit=False)


def init_db(engine=None) -> None:
    """Initialize database tables."""
    engine = engine or get_engine()
    Base.metadata.create_all(engine)
