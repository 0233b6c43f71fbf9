"""Commission policy schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from leadflow.models.policy import PolicyType


class ActiveLeadTier(BaseModel):
    """Pay `amount` once the rep has at least `active_leads` active leads."""

    active_leads: int = Field(..., ge=0)
    amount: Decimal = Field(..., ge=0)


class PolicyCreateRequest(BaseModel):
    """Request to create a commission policy version."""

    org_id: int
    type: PolicyType
    name: Optional[str] = Field(None, max_length=100)
    active_lead_table: List[ActiveLeadTier] = Field(default_factory=list)
    starter_split: Decimal = Field(Decimal("1"), gt=0, le=1)
    closer_split: Decimal = Field(Decimal("1"), gt=0, le=1)
    inbound_factor: Decimal = Field(Decimal("1"), gt=0, le=1)
    penalty_factor: Decimal = Field(Decimal("1"), ge=0, le=1)
    team_lead_bonus_amount: Decimal = Field(Decimal("0"), ge=0)
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    per_truck_rate: Optional[Decimal] = Field(None, ge=0)
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    activate: bool = False

    @field_validator("active_lead_table")
    @classmethod
    def unique_thresholds(cls, tiers: List[ActiveLeadTier]) -> List[ActiveLeadTier]:
        thresholds = [tier.active_leads for tier in tiers]
        if len(thresholds) != len(set(thresholds)):
            raise ValueError("active lead thresholds must be unique")
        return tiers


class PolicyActivateRequest(BaseModel):
    """Optional guard: only activate if the policy is of this type."""

    type: Optional[PolicyType] = None


class PolicyResponse(BaseModel):
    """Commission policy as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    org_id: int
    type: PolicyType = Field(validation_alias="policy_type")
    name: Optional[str]
    is_active: bool
    active_lead_table: List[ActiveLeadTier]
    starter_split: Decimal
    closer_split: Decimal
    inbound_factor: Decimal
    penalty_factor: Decimal
    team_lead_bonus_amount: Decimal
    commission_rate: Optional[Decimal]
    per_truck_rate: Optional[Decimal]
    valid_from: Optional[datetime]
    valid_to: Optional[datetime]
