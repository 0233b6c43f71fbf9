"""Lead lifecycle API endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.auth.dependencies import get_current_user
from leadflow.db import get_db
from leadflow.models import User
from leadflow.schemas.lead import (
    ActivityResponse,
    CallAttemptRequest,
    HandoffResponse,
    LeadResponse,
    SalesUserResponse,
    SalesUsersRequest,
    StatusChangeRequest,
    StatusChangeResponse,
    TimelineResponse,
)
from leadflow.services.lifecycle import LeadLifecycleController
from leadflow.services.notifier import Notifier, get_notifier

router = APIRouter(prefix="/leads", tags=["Leads"])


@router.patch("/{lead_id}/status", response_model=StatusChangeResponse)
async def change_lead_status(
    lead_id: int,
    data: StatusChangeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Apply a guarded status transition.

    Handing a lead to dispatch answers 412 with the missing precondition
    (call attempts or MC number) when the lead is not ready.
    """
    controller = LeadLifecycleController(db, notifier)
    result = await controller.transition(
        lead_id, data.status, actor_id=current_user.id, notes=data.notes
    )
    return StatusChangeResponse(
        lead=LeadResponse.model_validate(result.lead),
        handoff=HandoffResponse.model_validate(result.handoff) if result.handoff else None,
    )


@router.post("/{lead_id}/call-attempts", response_model=LeadResponse)
async def log_call_attempt(
    lead_id: int,
    data: CallAttemptRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """Record one call attempt on the lead."""
    controller = LeadLifecycleController(db, notifier)
    lead = await controller.log_call_attempt(lead_id, actor_id=current_user.id, notes=data.notes)
    return LeadResponse.model_validate(lead)


@router.put("/{lead_id}/sales-users", response_model=List[SalesUserResponse])
async def assign_sales_users(
    lead_id: int,
    data: SalesUsersRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Set the starter and/or closer credited for the lead."""
    controller = LeadLifecycleController(db)
    assignments = await controller.assign_sales_users(
        lead_id,
        actor_id=current_user.id,
        starter_id=data.starter_id,
        closer_id=data.closer_id,
    )
    return [SalesUserResponse.model_validate(a) for a in assignments]


@router.get("/{lead_id}/timeline", response_model=TimelineResponse)
async def lead_timeline(
    lead_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Everything that happened to the lead, oldest first."""
    activities = await LeadLifecycleController(db).timeline(lead_id)
    return TimelineResponse(
        lead_id=lead_id,
        items=[ActivityResponse.model_validate(a) for a in activities],
    )
