"""
Declarative base and the shared columns of mutable records.

Append-only tables (activities, clock events, commission runs) derive from
Base directly and carry only the timestamp they need. Everything that can
be edited after insert derives from Record.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """created_at set by the database on insert, updated_at on every update."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class Record(Base, TimestampMixin):
    """Editable row: integer surrogate key plus created/updated stamps."""

    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
