"""
Activity model: the append-only timeline of who did what to which entity.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, JSON, String, Text, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from leadflow.models.base import Base


class ActivityType(str, Enum):
    """Types of recorded activity."""
    STATUS_CHANGED = "status_changed"
    CALL_LOGGED = "call_logged"
    SALES_USERS_ASSIGNED = "sales_users_assigned"
    HANDOFF_CREATED = "handoff_created"
    POLICY_CREATED = "policy_created"
    POLICY_ACTIVATED = "policy_activated"
    POLICY_ARCHIVED = "policy_archived"
    COMMISSION_CALCULATED = "commission_calculated"
    REMINDER_SENT = "reminder_sent"


class Activity(Base):
    """
    Immutable timeline entry.

    Rows are only ever inserted. The lead timeline is the set of entries
    with entity_type='lead' and entity_id=<lead id>.
    """

    __tablename__ = "activities"
    __table_args__ = (
        Index("ix_activities_entity", "entity_type", "entity_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        index=True,
        comment="Actor; NULL for scheduled jobs",
    )
    activity_type: Mapped[ActivityType] = mapped_column(
        SQLAlchemyEnum(
            ActivityType,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Type of entity affected (lead, policy, commission_run)",
    )
    entity_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    previous_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    next_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Additional context about the activity",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Activity(id={self.id}, type={self.activity_type}, "
            f"{self.entity_type}={self.entity_id})>"
        )
