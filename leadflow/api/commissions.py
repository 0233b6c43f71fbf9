"""Monthly commission API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.auth.dependencies import get_current_user, require_team_lead
from leadflow.db import AsyncSessionLocal, get_db
from leadflow.models import User
from leadflow.schemas.commission import (
    BatchReportResponse,
    CommissionRunResponse,
    GenerateCommissionsRequest,
    MonthlyCommissionResponse,
)
from leadflow.services.batch import generate_monthly_commissions
from leadflow.services.commission import MonthPeriod
from leadflow.services.commission_runs import CommissionRunStore, get_monthly_commission
from leadflow.services.notifier import Notifier, get_notifier
from leadflow.services.repositories import UserRepository

router = APIRouter(prefix="/commissions", tags=["Commissions"])


def get_session_factory():
    """Session factory used by batch generation (one session per user)."""
    return AsyncSessionLocal


@router.get("/monthly/user/{user_id}", response_model=MonthlyCommissionResponse)
async def current_month_commission(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """Commission for the current month."""
    return await get_monthly_commission(
        db, user_id, None, calculated_by=current_user.id, notifier=notifier
    )


@router.get("/monthly/user/{user_id}/{month}", response_model=MonthlyCommissionResponse)
async def monthly_commission(
    user_id: int,
    month: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Commission for a YYYY-MM month.

    The first call stores the snapshot; later calls return it unchanged.
    Calculation failures come back as a zeroed snapshot with degraded=true.
    """
    return await get_monthly_commission(
        db, user_id, month, calculated_by=current_user.id, notifier=notifier
    )


@router.get("/runs/user/{user_id}", response_model=List[CommissionRunResponse])
async def commission_history(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Stored runs for a user, newest month first."""
    await UserRepository(db).get(user_id)
    runs = await CommissionRunStore(db).list_for_user(user_id)
    return [CommissionRunResponse.model_validate(run) for run in runs]


@router.post("/monthly/generate", response_model=BatchReportResponse)
async def generate_commissions(
    data: Optional[GenerateCommissionsRequest] = None,
    current_user: User = Depends(require_team_lead),
    notifier: Notifier = Depends(get_notifier),
    session_factory=Depends(get_session_factory),
):
    """Compute the month for every active sales and dispatch user (default: previous month)."""
    if data and data.month:
        period = MonthPeriod.parse(data.month)
    else:
        period = MonthPeriod.current().previous()

    return await generate_monthly_commissions(
        session_factory, period, calculated_by=current_user.id, notifier=notifier
    )
