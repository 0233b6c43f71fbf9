"""
Sales rep monthly commission.

Rules:
- Base commission comes from the policy's active-lead table: the highest
  threshold the rep's active-lead count reaches pays its amount
- Each lead carries a split factor: starter -> starter_split,
  closer -> closer_split, no role -> 1 (direct); inbound leads are further
  multiplied by inbound_factor. Factors are reported per lead
- No active leads at all -> base is multiplied by penalty_factor
- Team leads add the policy's team lead bonus
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.config import settings
from leadflow.models import (
    CommissionPolicy,
    CommissionRun,
    Lead,
    LeadStatus,
    PolicyType,
    SalesRole,
    User,
)
from leadflow.services.commission import (
    ZERO,
    CommissionResult,
    DealLine,
    InboundPredicate,
    MonthPeriod,
    format_percent,
    inbound_predicate_for,
    lookup_tier,
    money,
)
from leadflow.services.policies import PolicyStore
from leadflow.services.repositories import InvoiceRepository, LeadRepository

logger = logging.getLogger(__name__)

DIRECT = "direct"

# Not wired to a ranking feed yet
REP_OF_MONTH_BONUS = ZERO
ACTIVE_TRUCKS_BONUS = ZERO


def lead_split(
    role: Optional[SalesRole],
    inbound: bool,
    policy: CommissionPolicy,
) -> tuple:
    """
    Split factor and reason for one lead.

    Returns:
        (factor, reason) e.g. (Decimal("0.375"), "starter (50%) + inbound (75%)")
    """
    if role == SalesRole.STARTER:
        factor = Decimal(policy.starter_split)
        reason = f"starter ({format_percent(factor)})"
    elif role == SalesRole.CLOSER:
        factor = Decimal(policy.closer_split)
        reason = f"closer ({format_percent(factor)})"
    else:
        factor = Decimal("1")
        reason = DIRECT

    if inbound:
        inbound_factor = Decimal(policy.inbound_factor)
        factor = factor * inbound_factor
        reason = f"{reason} + inbound ({format_percent(inbound_factor)})"

    return factor, reason


class SalesCommissionCalculator:
    """Calculates sales rep commission from leads and the active sales policy."""

    policy_type = PolicyType.SALES

    def __init__(
        self,
        db: AsyncSession,
        inbound_predicate: Optional[InboundPredicate] = None,
    ):
        self.db = db
        self.policies = PolicyStore(db)
        self.leads = LeadRepository(db)
        self.invoices = InvoiceRepository(db)
        self.is_inbound = inbound_predicate or inbound_predicate_for(settings.inbound_detection)

    async def compute(self, user: User, period: MonthPeriod) -> CommissionResult:
        policy = await self.policies.get_active_policy(user.org_id, PolicyType.SALES)

        leads = await self.leads.list_for_user(user.id)
        roles = await self.leads.roles_for_user(user.id)
        active_leads = [lead for lead in leads if lead.status == LeadStatus.ACTIVE]
        active_count = len(active_leads)

        applied_tier, base = lookup_tier(policy.tiers(), active_count)

        adjustments = []
        for lead in leads:
            role = roles.get(lead.id)
            inbound = self.is_inbound(lead)
            factor, reason = lead_split(role, inbound, policy)
            adjustments.append({
                "lead_id": lead.id,
                "lead_name": lead.company_name,
                "status": lead.status.value,
                "role": role.value if role else DIRECT,
                "inbound": inbound,
                "factor": str(factor),
                "factor_display": format_percent(factor),
                "reason": reason,
            })

        penalty_applied = active_count == 0
        penalty_factor = Decimal(policy.penalty_factor)
        adjusted = base * penalty_factor if penalty_applied else base

        team_lead_bonus = (
            Decimal(policy.team_lead_bonus_amount) if user.is_team_lead else ZERO
        )
        total = adjusted + REP_OF_MONTH_BONUS + ACTIVE_TRUCKS_BONUS + team_lead_bonus

        details = {
            "type": PolicyType.SALES.value,
            "month": period.label,
            "policy_id": policy.id,
            "active_leads": active_count,
            "total_leads": len(leads),
            "applied_tier": applied_tier,
            "tiers": [
                {"active_leads": threshold, "amount": str(amount)}
                for threshold, amount in policy.tiers()
            ],
            "base_commission": str(money(base)),
            "penalty": {
                "applied": penalty_applied,
                "factor": str(penalty_factor),
                "factor_display": format_percent(penalty_factor),
            },
            "lead_adjustments": adjustments,
            "bonuses": {
                "rep_of_month": str(money(REP_OF_MONTH_BONUS)),
                "active_trucks": str(money(ACTIVE_TRUCKS_BONUS)),
                "team_lead": str(money(team_lead_bonus)),
            },
            "total_commission": str(money(total)),
        }

        logger.debug(
            f"Sales commission for user {user.id} {period}: {active_count} active leads, "
            f"tier {applied_tier}, total {money(total)}"
        )

        return CommissionResult(
            run_type=PolicyType.SALES,
            policy_id=policy.id,
            active_lead_count=active_count,
            base_commission=base,
            adjusted_commission=adjusted,
            rep_of_month_bonus=REP_OF_MONTH_BONUS,
            active_trucks_bonus=ACTIVE_TRUCKS_BONUS,
            team_lead_bonus=team_lead_bonus,
            total_commission=total,
            penalty_applied=penalty_applied,
            calculation_details=details,
        )

    async def load_deals(
        self, user: User, period: MonthPeriod, run: CommissionRun
    ) -> List[DealLine]:
        """The month's invoices on the rep's leads, with the rep's role on each."""
        leads: List[Lead] = await self.leads.list_for_user(user.id)
        roles: Dict[int, SalesRole] = await self.leads.roles_for_user(user.id)
        invoices = await self.invoices.list_for_leads([lead.id for lead in leads], period)

        return [
            DealLine(
                invoice_id=invoice.id,
                lead_id=invoice.lead_id,
                lead_name=invoice.lead.company_name if invoice.lead else "Unknown",
                amount=money(invoice.total_amount),
                created_at=invoice.created_at,
                status=invoice.status,
                role=roles[invoice.lead_id].value if invoice.lead_id in roles else DIRECT,
            )
            for invoice in invoices
        ]
