"""
Invoice model. Owned by finance; read here as commission input.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leadflow.models.base import Record
from leadflow.models.lead import Lead


class Invoice(Record):
    """Invoice raised against a lead's loads."""

    __tablename__ = "invoices"

    invoice_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    lead_id: Mapped[int] = mapped_column(
        ForeignKey("leads.id"),
        nullable=False,
        index=True,
    )
    org_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("organizations.id"),
        nullable=True,
        index=True,
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default="draft",
        nullable=False,
        comment="draft, sent, paid, cancelled",
    )
    dispatcher_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        index=True,
        comment="Dispatcher who raised the invoice",
    )

    lead: Mapped["Lead"] = relationship("Lead")

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, lead_id={self.lead_id}, total={self.total_amount})>"
