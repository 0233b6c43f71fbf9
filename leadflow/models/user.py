"""
Organization and user models.

Both are owned by the identity/admin side of the back office; this service
only reads them to resolve who is asking and which policy applies.
"""

from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from leadflow.models.base import Record


class Department(str, Enum):
    """Department a user belongs to. Decides which calculator pays them."""
    SALES = "sales"
    DISPATCH = "dispatch"
    ADMIN = "admin"


class Organization(Record):
    """A tenant of the back office."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, code='{self.code}')>"


class User(Record):
    """
    User account as seen by the commission engine.

    - department: sales reps are paid by active-lead tiers,
      dispatchers by invoiced volume
    - is_team_lead: adds the policy's team lead bonus
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
    )
    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    org_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("organizations.id"),
        nullable=True,
        index=True,
    )
    department: Mapped[Department] = mapped_column(
        SQLAlchemyEnum(
            Department,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=Department.SALES,
        nullable=False,
    )
    is_team_lead: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', department={self.department})>"
