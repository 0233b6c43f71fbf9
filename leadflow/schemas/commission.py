"""Monthly commission schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from leadflow.models.policy import PolicyType


class CommissionDeal(BaseModel):
    """An invoice counted in the month."""

    invoice_id: int
    lead_id: int
    lead_name: str
    amount: Decimal
    status: str
    created_at: datetime
    role: Optional[str] = None
    commission: Optional[Decimal] = None


class CommissionStats(BaseModel):
    total_deals: int = 0
    active_leads: int = 0
    avg_commission_per_deal: Decimal = Decimal("0")


class MonthlyCommissionResponse(BaseModel):
    """
    Commission breakdown for one user and month.

    `degraded` marks a placeholder returned because the calculation failed;
    a genuine zero month has degraded=False.
    """

    user_id: int
    user_name: str
    department: str
    month: str
    run_id: Optional[int] = None
    policy_id: Optional[int] = None

    base_commission: Decimal = Decimal("0")
    adjusted_commission: Decimal = Decimal("0")
    rep_of_month_bonus: Decimal = Decimal("0")
    active_trucks_bonus: Decimal = Decimal("0")
    team_lead_bonus: Decimal = Decimal("0")
    total_commission: Decimal = Decimal("0")
    penalty_applied: bool = False

    calculation_details: Dict[str, Any] = Field(default_factory=dict)
    deals: List[CommissionDeal] = Field(default_factory=list)
    stats: CommissionStats = Field(default_factory=CommissionStats)

    calculated_at: Optional[datetime] = None
    calculated_by: Optional[int] = None
    cached: bool = False
    degraded: bool = False
    error: Optional[str] = None


class CommissionRunResponse(BaseModel):
    """Stored run, without deals."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    year: int
    month: int
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
    calculated_at: datetime


class GenerateCommissionsRequest(BaseModel):
    month: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}$")


class BatchFailure(BaseModel):
    user_id: int
    error: str
    message: str


class BatchReportResponse(BaseModel):
    month: str
    calculated: List[int]
    existing: List[int]
    failures: List[BatchFailure]
