"""Time tracking API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.auth.dependencies import get_current_user
from leadflow.db import get_db
from leadflow.models import User
from leadflow.schemas.time_tracking import ClockEventResponse, ClockRequest
from leadflow.services.time_tracking import ClockEventRepository
from leadflow.utils.activity import get_client_ip

router = APIRouter(prefix="/time", tags=["Time tracking"])


@router.post("/clock", response_model=ClockEventResponse, status_code=status.HTTP_201_CREATED)
async def clock(
    data: ClockRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Clock the current user in or out."""
    event = await ClockEventRepository(db).record(
        current_user.id,
        data.type,
        location=data.location,
        notes=data.notes,
        ip_address=get_client_ip(request),
    )
    return ClockEventResponse.model_validate(event)


@router.get("/clock/user/{user_id}", response_model=List[ClockEventResponse])
async def clock_events(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    events = await ClockEventRepository(db).list_for_user(user_id)
    return [ClockEventResponse.model_validate(e) for e in events]
