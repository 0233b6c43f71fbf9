"""
ClockEvent model for time tracking. Append-only.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from leadflow.models.base import Base


class ClockEventType(str, Enum):
    IN = "IN"
    OUT = "OUT"


class ClockEvent(Base):
    """A single clock-in or clock-out."""

    __tablename__ = "clock_events"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    event_type: Mapped[ClockEventType] = mapped_column(
        SQLAlchemyEnum(
            ClockEventType,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),
        nullable=True,
        comment="IPv4 or IPv6 address",
    )

    def __repr__(self) -> str:
        return f"<ClockEvent(id={self.id}, user_id={self.user_id}, type={self.event_type})>"
