"""Commission policy API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.auth.dependencies import get_current_user, require_team_lead
from leadflow.db import get_db
from leadflow.exceptions import ValidationError
from leadflow.models import PolicyType, User
from leadflow.schemas.policy import (
    PolicyActivateRequest,
    PolicyCreateRequest,
    PolicyResponse,
)
from leadflow.services.notifier import Notifier, get_notifier
from leadflow.services.policies import PolicyStore

router = APIRouter(prefix="/commissions/policy", tags=["Commission policies"])


def _org_of(user: User, org_id: Optional[int]) -> int:
    org = org_id if org_id is not None else user.org_id
    if org is None:
        raise ValidationError("org_id is required", details={"field": "org_id"})
    return org


@router.post("", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(
    data: PolicyCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_team_lead),
    notifier: Notifier = Depends(get_notifier),
):
    """Create a policy version (inactive unless `activate` is set)."""
    policy = await PolicyStore(db, notifier).create(data, created_by=current_user.id)
    return PolicyResponse.model_validate(policy)


@router.get("", response_model=List[PolicyResponse])
async def list_policies(
    type: Optional[PolicyType] = Query(None),
    org_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """All versions for the organization, newest first."""
    policies = await PolicyStore(db).list(_org_of(current_user, org_id), type)
    return [PolicyResponse.model_validate(p) for p in policies]


@router.get("/active", response_model=PolicyResponse)
async def active_policy(
    type: PolicyType = Query(...),
    org_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """The policy currently in force for the type."""
    policy = await PolicyStore(db).get_active_policy(_org_of(current_user, org_id), type)
    return PolicyResponse.model_validate(policy)


@router.patch("/{policy_id}/activate", response_model=PolicyResponse)
async def activate_policy(
    policy_id: int,
    data: Optional[PolicyActivateRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_team_lead),
    notifier: Notifier = Depends(get_notifier),
):
    """Make the policy the active one, deactivating its siblings."""
    policy = await PolicyStore(db, notifier).activate(
        policy_id,
        actor_id=current_user.id,
        expected_type=data.type if data else None,
    )
    return PolicyResponse.model_validate(policy)


@router.patch("/{policy_id}/archive", response_model=PolicyResponse)
async def archive_policy(
    policy_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_team_lead),
):
    """Retire the policy."""
    policy = await PolicyStore(db).archive(policy_id, actor_id=current_user.id)
    return PolicyResponse.model_validate(policy)
