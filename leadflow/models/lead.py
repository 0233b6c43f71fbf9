"""
Lead model and the records hanging off it: sales role assignments and
dispatch handoffs.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leadflow.models.base import Base, Record

MC_NUMBER_PENDING = "Pending"


class LeadStatus(str, Enum):
    """Status of the lead in the sales pipeline."""
    NEW = "New"
    IN_PROGRESS = "InProgress"
    FOLLOW_UP = "FollowUp"
    HAND_TO_DISPATCH = "HandToDispatch"
    ACTIVE = "Active"                  # Carrier generating business
    LOST = "Lost"                      # Terminal


class LeadSource(str, Enum):
    """Where the lead came from."""
    SQL = "SQL"    # Sales-qualified, sourced by the rep
    MQL = "MQL"    # Marketing-qualified, came in from marketing


class SalesRole(str, Enum):
    """Sales role attribution on a lead."""
    STARTER = "starter"
    CLOSER = "closer"


class HandoffStatus(str, Enum):
    """State of a lead handoff from sales to dispatch."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Lead(Record):
    """
    A carrier lead worked by a sales rep.

    Transition timestamps (in_progress_at, hand_to_dispatch_at, activated_at)
    are stamped the first time the lead enters the state and never move after.
    """

    __tablename__ = "leads"

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mc_number: Mapped[str] = mapped_column(
        String(50),
        default=MC_NUMBER_PENDING,
        nullable=False,
        comment="Motor-carrier number, 'Pending' until obtained",
    )
    status: Mapped[LeadStatus] = mapped_column(
        SQLAlchemyEnum(
            LeadStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=LeadStatus.NEW,
        nullable=False,
        index=True,
    )
    source: Mapped[LeadSource] = mapped_column(
        SQLAlchemyEnum(
            LeadSource,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=LeadSource.SQL,
        nullable=False,
    )
    call_attempts: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    assigned_to: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    org_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("organizations.id"),
        nullable=True,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    in_progress_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    hand_to_dispatch_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    activated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    sales_users: Mapped[List["LeadSalesUser"]] = relationship(
        "LeadSalesUser",
        back_populates="lead",
    )
    handoffs: Mapped[List["LeadHandoff"]] = relationship(
        "LeadHandoff",
        back_populates="lead",
    )

    @property
    def has_mc_number(self) -> bool:
        """True once a real MC number has been recorded."""
        value = (self.mc_number or "").strip()
        return bool(value) and value != MC_NUMBER_PENDING

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, company='{self.company_name}', status={self.status})>"


class LeadSalesUser(Base):
    """
    Starter/closer attribution of a user on a lead.

    A lead has at most one starter and one closer. A rep with no row on a
    lead they own is credited as direct.
    """

    __tablename__ = "lead_sales_users"
    __table_args__ = (
        UniqueConstraint("lead_id", "role", name="uq_lead_sales_user_role"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    lead_id: Mapped[int] = mapped_column(
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    role: Mapped[SalesRole] = mapped_column(
        SQLAlchemyEnum(
            SalesRole,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    lead: Mapped["Lead"] = relationship("Lead", back_populates="sales_users")

    def __repr__(self) -> str:
        return f"<LeadSalesUser(lead_id={self.lead_id}, user_id={self.user_id}, role={self.role})>"


class LeadHandoff(Record):
    """Record of a lead being handed from sales to dispatch."""

    __tablename__ = "lead_handoffs"

    lead_id: Mapped[int] = mapped_column(
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sales_rep_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    dispatcher_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        index=True,
    )
    status: Mapped[HandoffStatus] = mapped_column(
        SQLAlchemyEnum(
            HandoffStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=HandoffStatus.PENDING,
        nullable=False,
        index=True,
    )
    handoff_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    handoff_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    lead: Mapped["Lead"] = relationship("Lead", back_populates="handoffs")

    def __repr__(self) -> str:
        return f"<LeadHandoff(id={self.id}, lead_id={self.lead_id}, status={self.status})>"
