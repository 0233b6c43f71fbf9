"""Lead lifecycle schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from leadflow.models.activity import ActivityType
from leadflow.models.lead import HandoffStatus, LeadSource, LeadStatus, SalesRole


class StatusChangeRequest(BaseModel):
    """Request to move a lead to another status."""

    status: LeadStatus
    notes: Optional[str] = Field(None, max_length=2000)


class CallAttemptRequest(BaseModel):
    """Log an outbound call on a lead."""

    notes: Optional[str] = Field(None, max_length=2000)


class SalesUsersRequest(BaseModel):
    """Set who started and who closed a lead."""

    starter_id: Optional[int] = None
    closer_id: Optional[int] = None

    @model_validator(mode="after")
    def at_least_one(self) -> "SalesUsersRequest":
        if self.starter_id is None and self.closer_id is None:
            raise ValueError("starter_id or closer_id is required")
        return self


class LeadResponse(BaseModel):
    """Lead as returned after a lifecycle change."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    company_name: str
    mc_number: str
    status: LeadStatus
    source: LeadSource
    call_attempts: int
    assigned_to: int
    org_id: Optional[int]
    in_progress_at: Optional[datetime]
    hand_to_dispatch_at: Optional[datetime]
    activated_at: Optional[datetime]


class HandoffResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    lead_id: int
    sales_rep_id: int
    status: HandoffStatus
    handoff_date: datetime


class StatusChangeResponse(BaseModel):
    lead: LeadResponse
    handoff: Optional[HandoffResponse] = None


class SalesUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lead_id: int
    user_id: int
    role: SalesRole


class ActivityResponse(BaseModel):
    """One timeline entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    activity_type: ActivityType
    user_id: Optional[int]
    previous_status: Optional[str]
    next_status: Optional[str]
    notes: Optional[str]
    details: Optional[dict]
    created_at: datetime


class TimelineResponse(BaseModel):
    lead_id: int
    items: List[ActivityResponse]
