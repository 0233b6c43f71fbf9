"""
CommissionRun model: the immutable monthly commission snapshot.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    UniqueConstraint,
    func,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from leadflow.models.base import Base
from leadflow.models.policy import PolicyType


class CommissionRun(Base):
    """
    One calculated month of commission for one user.

    Append-only: rows are inserted once per (user_id, year, month) and never
    updated or deleted. The unique constraint is what makes concurrent
    first-time calculations collapse onto a single row.
    """

    __tablename__ = "commission_runs"
    __table_args__ = (
        UniqueConstraint("user_id", "year", "month", name="uq_commission_run_user_month"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    org_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("organizations.id"),
        nullable=True,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    run_type: Mapped[PolicyType] = mapped_column(
        SQLAlchemyEnum(
            PolicyType,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    policy_id: Mapped[int] = mapped_column(
        ForeignKey("commission_policies.id"),
        nullable=False,
    )

    active_lead_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    base_commission: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    adjusted_commission: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    rep_of_month_bonus: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    active_trucks_bonus: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    team_lead_bonus: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_commission: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    penalty_applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    calculation_details: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Structured breakdown of how the totals were derived",
    )
    calculated_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    @property
    def period(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def __repr__(self) -> str:
        return (
            f"<CommissionRun(id={self.id}, user_id={self.user_id}, "
            f"period={self.period}, total={self.total_commission})>"
        )
