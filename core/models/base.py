"""Base model and mixins for all SQLAlchemy models.

Provides:
- Base: Declarative base class for all models
- UTCDateTime: timezone-aware UTC datetime column type
- TimestampMixin: created_at / updated_at audit columns

Timestamps are stamped from Python (UTC) rather than left to the server
default, so a write always carries the exact modification time the
repository assigned and returns.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """DateTime that always comes back as an aware UTC datetime.

    Backends without a timezone type (SQLite) return naive values on load;
    those are read as UTC, the zone every stamp is written in.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return _as_utc(value)

    def process_result_value(self, value, dialect):
        return _as_utc(value)


class Base(DeclarativeBase):
    """Declarative base for all storefront models."""
    pass


class TimestampMixin:
    """Mixin providing standard audit columns.

    Adds:
    - created_at: Timestamp set on insert
    - updated_at: Timestamp set on every write
    """

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
