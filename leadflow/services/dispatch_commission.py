"""
Dispatcher monthly commission.

base          = sum(invoice totals raised this month) * commission_rate
active trucks = distinct Active leads among those invoices, paid per_truck_rate each
total         = base + active trucks bonus + team lead bonus

There is no penalty for dispatch. Rates come from the active dispatch policy
and fall back to the configured defaults when the policy leaves them empty.
"""

import logging
from decimal import Decimal
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.config import settings
from leadflow.models import CommissionPolicy, CommissionRun, LeadStatus, PolicyType, User
from leadflow.services.commission import (
    ZERO,
    CommissionResult,
    DealLine,
    MonthPeriod,
    format_percent,
    money,
)
from leadflow.services.policies import PolicyStore
from leadflow.services.repositories import InvoiceRepository

logger = logging.getLogger(__name__)


def dispatch_rates(policy: CommissionPolicy) -> tuple:
    """(commission_rate, per_truck_rate) for a dispatch policy."""
    rate = policy.commission_rate
    if rate is None:
        rate = settings.dispatch_commission_rate
    per_truck = policy.per_truck_rate
    if per_truck is None:
        per_truck = settings.dispatch_per_truck_rate
    return Decimal(rate), Decimal(per_truck)


class DispatchCommissionCalculator:
    """Calculates dispatcher commission from the month's invoices."""

    policy_type = PolicyType.DISPATCH

    def __init__(self, db: AsyncSession):
        self.db = db
        self.policies = PolicyStore(db)
        self.invoices = InvoiceRepository(db)

    async def compute(self, user: User, period: MonthPeriod) -> CommissionResult:
        policy = await self.policies.get_active_policy(user.org_id, PolicyType.DISPATCH)
        rate, per_truck = dispatch_rates(policy)

        invoices = await self.invoices.list_for_dispatcher(user.id, period)
        total_invoiced = sum((Decimal(inv.total_amount) for inv in invoices), ZERO)

        active_trucks = sorted({
            inv.lead_id
            for inv in invoices
            if inv.lead is not None and inv.lead.status == LeadStatus.ACTIVE
        })

        base = total_invoiced * rate
        active_trucks_bonus = per_truck * len(active_trucks)
        team_lead_bonus = (
            Decimal(policy.team_lead_bonus_amount) if user.is_team_lead else ZERO
        )
        rep_of_month_bonus = ZERO
        total = base + active_trucks_bonus + team_lead_bonus + rep_of_month_bonus

        details = {
            "type": PolicyType.DISPATCH.value,
            "month": period.label,
            "policy_id": policy.id,
            "invoice_count": len(invoices),
            "total_invoiced": str(money(total_invoiced)),
            "commission_rate": str(rate),
            "commission_rate_display": format_percent(rate),
            "base_commission": str(money(base)),
            "active_trucks": {
                "count": len(active_trucks),
                "lead_ids": active_trucks,
                "per_truck_rate": str(money(per_truck)),
            },
            "bonuses": {
                "rep_of_month": str(money(rep_of_month_bonus)),
                "active_trucks": str(money(active_trucks_bonus)),
                "team_lead": str(money(team_lead_bonus)),
            },
            "total_commission": str(money(total)),
        }

        logger.debug(
            f"Dispatch commission for user {user.id} {period}: invoiced {money(total_invoiced)}, "
            f"{len(active_trucks)} active trucks, total {money(total)}"
        )

        return CommissionResult(
            run_type=PolicyType.DISPATCH,
            policy_id=policy.id,
            active_lead_count=len(active_trucks),
            base_commission=base,
            adjusted_commission=base,
            rep_of_month_bonus=rep_of_month_bonus,
            active_trucks_bonus=active_trucks_bonus,
            team_lead_bonus=team_lead_bonus,
            total_commission=total,
            penalty_applied=False,
            calculation_details=details,
        )

    async def load_deals(
        self, user: User, period: MonthPeriod, run: CommissionRun
    ) -> List[DealLine]:
        """The dispatcher's invoices this month, each with its commission at the stored rate."""
        stored_rate = (run.calculation_details or {}).get("commission_rate")
        rate = Decimal(stored_rate) if stored_rate is not None else settings.dispatch_commission_rate

        invoices = await self.invoices.list_for_dispatcher(user.id, period)
        return [
            DealLine(
                invoice_id=invoice.id,
                lead_id=invoice.lead_id,
                lead_name=invoice.lead.company_name if invoice.lead else "Unknown",
                amount=money(invoice.total_amount),
                created_at=invoice.created_at,
                status=invoice.status,
                commission=money(Decimal(invoice.total_amount) * rate),
            )
            for invoice in invoices
        ]
