"""
Shared pieces of the monthly commission engine.

Rules:
- A commission month is a calendar month "YYYY-MM" in UTC,
  from the 1st 00:00:00 through the last day 23:59:59
- Money is Decimal, rounded to cents (half up) before it is stored
- Percentages in calculation details are for display only ("50%");
  the stored factor stays canonical
"""

import calendar
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple

from leadflow.exceptions import ValidationError
from leadflow.models import CommissionRun, Lead, LeadSource, PolicyType, User

CENT = Decimal("0.01")
ZERO = Decimal("0")

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def money(value) -> Decimal:
    """Round a monetary amount to cents."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_percent(factor: Decimal) -> str:
    """0.5 -> '50%'."""
    return f"{(Decimal(factor) * 100).normalize():f}%"


@dataclass(frozen=True)
class MonthPeriod:
    """A calendar month."""

    year: int
    month: int

    @classmethod
    def parse(cls, value: str) -> "MonthPeriod":
        """Parse "YYYY-MM". Raises ValidationError on anything else."""
        match = MONTH_PATTERN.match(value or "")
        if not match:
            raise ValidationError(
                f"Month must be formatted as YYYY-MM, got {value!r}",
                details={"field": "month", "value": value},
            )
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12 or year < 1970:
            raise ValidationError(
                f"Month {value!r} is out of range",
                details={"field": "month", "value": value},
            )
        return cls(year, month)

    @classmethod
    def containing(cls, moment: datetime) -> "MonthPeriod":
        return cls(moment.year, moment.month)

    @classmethod
    def current(cls) -> "MonthPeriod":
        return cls.containing(datetime.now(timezone.utc))

    def previous(self) -> "MonthPeriod":
        if self.month == 1:
            return MonthPeriod(self.year - 1, 12)
        return MonthPeriod(self.year, self.month - 1)

    @property
    def start(self) -> datetime:
        return datetime(self.year, self.month, 1, tzinfo=timezone.utc)

    @property
    def end(self) -> datetime:
        last_day = calendar.monthrange(self.year, self.month)[1]
        return datetime(
            self.year, self.month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc
        )

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def __str__(self) -> str:
        return self.label


def lookup_tier(tiers: Sequence[Tuple[int, Decimal]], active_leads: int) -> Tuple[Optional[int], Decimal]:
    """
    Find the tier paid for a number of active leads.

    Tiers are scanned from the highest threshold down; the first threshold
    not exceeding the count wins. Below every threshold pays nothing.

    Returns:
        (threshold of the applied tier or None, amount)
    """
    for threshold, amount in sorted(tiers, key=lambda t: t[0], reverse=True):
        if threshold <= active_leads:
            return threshold, Decimal(amount)
    return None, ZERO


# Inbound detection. What makes a lead "inbound" is not settled upstream,
# so the calculator takes a predicate and the default says no lead is.
InboundPredicate = Callable[[Lead], bool]


def no_inbound_leads(lead: Lead) -> bool:
    return False


def mql_leads_are_inbound(lead: Lead) -> bool:
    return lead.source == LeadSource.MQL


def inbound_predicate_for(mode: str) -> InboundPredicate:
    """Resolve the configured inbound_detection mode."""
    if mode == "mql":
        return mql_leads_are_inbound
    return no_inbound_leads


@dataclass
class CommissionResult:
    """Output of a calculator, ready to become a CommissionRun row."""

    run_type: PolicyType
    policy_id: int
    active_lead_count: int
    base_commission: Decimal
    adjusted_commission: Decimal
    rep_of_month_bonus: Decimal
    active_trucks_bonus: Decimal
    team_lead_bonus: Decimal
    total_commission: Decimal
    penalty_applied: bool
    calculation_details: dict[str, Any] = field(default_factory=dict)

    def as_row(self) -> dict[str, Any]:
        return {
            "run_type": self.run_type,
            "policy_id": self.policy_id,
            "active_lead_count": self.active_lead_count,
            "base_commission": money(self.base_commission),
            "adjusted_commission": money(self.adjusted_commission),
            "rep_of_month_bonus": money(self.rep_of_month_bonus),
            "active_trucks_bonus": money(self.active_trucks_bonus),
            "team_lead_bonus": money(self.team_lead_bonus),
            "total_commission": money(self.total_commission),
            "penalty_applied": self.penalty_applied,
            "calculation_details": self.calculation_details,
        }


@dataclass
class DealLine:
    """One invoice line shown under a commission breakdown."""

    invoice_id: int
    lead_id: int
    lead_name: str
    amount: Decimal
    created_at: datetime
    status: str
    role: Optional[str] = None
    commission: Optional[Decimal] = None


class CommissionCalculator(Protocol):
    """What CommissionRunStore needs from a calculator."""

    policy_type: PolicyType

    async def compute(self, user: User, period: MonthPeriod) -> CommissionResult:
        ...

    async def load_deals(
        self, user: User, period: MonthPeriod, run: CommissionRun
    ) -> List[DealLine]:
        ...
