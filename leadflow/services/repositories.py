"""
Read access to users, leads and invoices.

These tables are maintained by the generic CRUD side of the back office;
the commission engine only reads them.
"""

from typing import Dict, List, Optional, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leadflow.exceptions import NotFoundError
from leadflow.models import Invoice, Lead, LeadSalesUser, SalesRole, User
from leadflow.services.commission import MonthPeriod


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("user", user_id)
        return user

    async def list_active(self, departments: Optional[Sequence[str]] = None) -> List[User]:
        query = select(User).where(User.is_active == True)  # noqa: E712
        if departments:
            query = query.where(User.department.in_(departments))
        result = await self.db.execute(query.order_by(User.id))
        return list(result.scalars().all())


class LeadRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, lead_id: int, for_update: bool = False) -> Lead:
        query = select(Lead).where(Lead.id == lead_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        lead = result.scalar_one_or_none()
        if not lead:
            raise NotFoundError("lead", lead_id)
        return lead

    async def list_for_user(self, user_id: int) -> List[Lead]:
        """Leads the user owns or carries a starter/closer role on."""
        attributed = select(LeadSalesUser.lead_id).where(LeadSalesUser.user_id == user_id)
        result = await self.db.execute(
            select(Lead)
            .where(or_(Lead.assigned_to == user_id, Lead.id.in_(attributed)))
            .order_by(Lead.id)
        )
        return list(result.scalars().all())

    async def roles_for_user(self, user_id: int) -> Dict[int, SalesRole]:
        """Map of lead_id -> the user's sales role on that lead."""
        result = await self.db.execute(
            select(LeadSalesUser.lead_id, LeadSalesUser.role)
            .where(LeadSalesUser.user_id == user_id)
        )
        return {lead_id: role for lead_id, role in result.all()}

    async def sales_users(self, lead_id: int) -> List[LeadSalesUser]:
        result = await self.db.execute(
            select(LeadSalesUser)
            .where(LeadSalesUser.lead_id == lead_id)
            .order_by(LeadSalesUser.role)
        )
        return list(result.scalars().all())


class InvoiceRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_leads(self, lead_ids: Sequence[int], period: MonthPeriod) -> List[Invoice]:
        """Invoices raised on the given leads within the month."""
        if not lead_ids:
            return []
        result = await self.db.execute(
            select(Invoice)
            .options(selectinload(Invoice.lead))
            .where(
                and_(
                    Invoice.lead_id.in_(lead_ids),
                    Invoice.created_at >= period.start,
                    Invoice.created_at <= period.end,
                )
            )
            .order_by(Invoice.created_at, Invoice.id)
        )
        return list(result.scalars().all())

    async def list_for_dispatcher(self, dispatcher_id: int, period: MonthPeriod) -> List[Invoice]:
        """Invoices the dispatcher raised within the month."""
        result = await self.db.execute(
            select(Invoice)
            .options(selectinload(Invoice.lead))
            .where(
                and_(
                    Invoice.dispatcher_id == dispatcher_id,
                    Invoice.created_at >= period.start,
                    Invoice.created_at <= period.end,
                )
            )
            .order_by(Invoice.created_at, Invoice.id)
        )
        return list(result.scalars().all())
