"""
CommissionPolicy model: versioned commission parameters per organization.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, JSON, Numeric, String, text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from leadflow.models.base import Record


class PolicyType(str, Enum):
    """Which department a policy pays."""
    SALES = "sales"
    DISPATCH = "dispatch"


class CommissionPolicy(Record):
    """
    A version of the commission rules for one (org, type).

    At most one policy per (org_id, policy_type) has is_active=True.
    Factors are fractions (0.5 = 50%), amounts are currency.
    """

    __tablename__ = "commission_policies"
    __table_args__ = (
        Index(
            "uq_commission_policy_active",
            "org_id",
            "policy_type",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    org_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id"),
        nullable=False,
        index=True,
    )
    policy_type: Mapped[PolicyType] = mapped_column(
        SQLAlchemyEnum(
            PolicyType,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
    )

    # [{"active_leads": 3, "amount": "500.00"}, ...]
    active_lead_table: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    starter_split: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        default=Decimal("1"),
        nullable=False,
    )
    closer_split: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        default=Decimal("1"),
        nullable=False,
    )
    inbound_factor: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        default=Decimal("1"),
        nullable=False,
    )
    penalty_factor: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        default=Decimal("1"),
        nullable=False,
        comment="Multiplier applied to base commission when the rep has no active leads",
    )
    team_lead_bonus_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=Decimal("0"),
        nullable=False,
    )

    # Dispatch only; NULL falls back to the configured defaults
    commission_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 4),
        nullable=True,
    )
    per_truck_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
    )

    valid_from: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    valid_to: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )

    def tiers(self) -> List[Tuple[int, Decimal]]:
        """Active-lead tiers as (threshold, amount) pairs, in stored order."""
        return [
            (int(tier["active_leads"]), Decimal(str(tier["amount"])))
            for tier in (self.active_lead_table or [])
        ]

    def __repr__(self) -> str:
        return (
            f"<CommissionPolicy(id={self.id}, org_id={self.org_id}, "
            f"type={self.policy_type}, active={self.is_active})>"
        )
