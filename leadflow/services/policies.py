"""
Commission policy store.

Policies are versioned per (organization, type). Exactly one version is
active at a time; activating one deactivates its siblings in the same
transaction, so readers never see two or zero active versions mid-switch.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.exceptions import NoActivePolicy, NotFoundError, PolicyTypeMismatch
from leadflow.models import ActivityType, CommissionPolicy, Organization, PolicyType
from leadflow.schemas.policy import PolicyCreateRequest
from leadflow.services.notifier import POLICY_ACTIVATED, Notifier, notify_committed, org_audience
from leadflow.utils.activity import log_activity

logger = logging.getLogger(__name__)


class PolicyStore:
    def __init__(self, db: AsyncSession, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier

    async def get(self, policy_id: int, for_update: bool = False) -> CommissionPolicy:
        query = select(CommissionPolicy).where(CommissionPolicy.id == policy_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        policy = result.scalar_one_or_none()
        if not policy:
            raise NotFoundError("policy", policy_id)
        return policy

    async def list(self, org_id: int, policy_type: Optional[PolicyType] = None) -> List[CommissionPolicy]:
        query = select(CommissionPolicy).where(CommissionPolicy.org_id == org_id)
        if policy_type:
            query = query.where(CommissionPolicy.policy_type == policy_type)
        result = await self.db.execute(query.order_by(CommissionPolicy.id.desc()))
        return list(result.scalars().all())

    async def get_active_policy(self, org_id: Optional[int], policy_type: PolicyType) -> CommissionPolicy:
        """The single active policy for (org, type). Raises NoActivePolicy if none."""
        if org_id is None:
            raise NoActivePolicy(org_id, policy_type.value)

        result = await self.db.execute(
            select(CommissionPolicy)
            .where(
                and_(
                    CommissionPolicy.org_id == org_id,
                    CommissionPolicy.policy_type == policy_type,
                    CommissionPolicy.is_active == True,  # noqa: E712
                )
            )
            .order_by(CommissionPolicy.id.desc())
        )
        policy = result.scalars().first()
        if not policy:
            raise NoActivePolicy(org_id, policy_type.value)
        return policy

    async def create(self, data: PolicyCreateRequest, created_by: Optional[int]) -> CommissionPolicy:
        """Create a new policy version. Activates it when requested."""
        org = await self.db.get(Organization, data.org_id)
        if not org:
            raise NotFoundError("organization", data.org_id)

        policy = CommissionPolicy(
            org_id=data.org_id,
            policy_type=data.type,
            name=data.name,
            is_active=False,
            active_lead_table=[
                {"active_leads": tier.active_leads, "amount": str(tier.amount)}
                for tier in data.active_lead_table
            ],
            starter_split=data.starter_split,
            closer_split=data.closer_split,
            inbound_factor=data.inbound_factor,
            penalty_factor=data.penalty_factor,
            team_lead_bonus_amount=data.team_lead_bonus_amount,
            commission_rate=data.commission_rate,
            per_truck_rate=data.per_truck_rate,
            valid_from=data.valid_from or datetime.now(timezone.utc),
            valid_to=data.valid_to,
            created_by=created_by,
        )
        self.db.add(policy)
        await self.db.flush()

        log_activity(
            db=self.db,
            user_id=created_by,
            activity_type=ActivityType.POLICY_CREATED,
            entity_type="policy",
            entity_id=policy.id,
            details={"org_id": policy.org_id, "type": policy.policy_type.value},
        )
        logger.info(f"Created {policy.policy_type.value} policy {policy.id} for org {policy.org_id}")

        if data.activate:
            return await self.activate(policy.id, actor_id=created_by)

        await self.db.commit()
        return policy

    async def activate(
        self,
        policy_id: int,
        actor_id: Optional[int] = None,
        expected_type: Optional[PolicyType] = None,
    ) -> CommissionPolicy:
        """
        Make a policy the active one for its (org, type).

        Siblings are deactivated and the target activated within one
        transaction; nothing is committed if either step fails.
        """
        policy = await self.get(policy_id, for_update=True)
        if expected_type is not None and policy.policy_type != expected_type:
            raise PolicyTypeMismatch(expected_type.value, policy.policy_type.value)

        await self.db.execute(
            update(CommissionPolicy)
            .where(
                and_(
                    CommissionPolicy.org_id == policy.org_id,
                    CommissionPolicy.policy_type == policy.policy_type,
                    CommissionPolicy.id != policy.id,
                    CommissionPolicy.is_active == True,  # noqa: E712
                )
            )
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        policy.is_active = True
        policy.valid_to = None

        log_activity(
            db=self.db,
            user_id=actor_id,
            activity_type=ActivityType.POLICY_ACTIVATED,
            entity_type="policy",
            entity_id=policy.id,
            details={"org_id": policy.org_id, "type": policy.policy_type.value},
        )
        await self.db.commit()
        logger.info(
            f"Activated {policy.policy_type.value} policy {policy.id} for org {policy.org_id}"
        )

        await notify_committed(
            self.notifier,
            POLICY_ACTIVATED,
            {"policy_id": policy.id, "type": policy.policy_type.value},
            org_audience(policy.org_id),
        )
        return policy

    async def archive(self, policy_id: int, actor_id: Optional[int] = None) -> CommissionPolicy:
        """
        Retire a policy.

        Archiving the active policy leaves the (org, type) with none until
        another is activated; calculations fail with NoActivePolicy meanwhile.
        """
        policy = await self.get(policy_id, for_update=True)
        was_active = policy.is_active
        policy.is_active = False
        policy.valid_to = datetime.now(timezone.utc)

        log_activity(
            db=self.db,
            user_id=actor_id,
            activity_type=ActivityType.POLICY_ARCHIVED,
            entity_type="policy",
            entity_id=policy.id,
            details={"was_active": was_active},
        )
        await self.db.commit()

        if was_active:
            logger.warning(
                f"Archived active {policy.policy_type.value} policy {policy.id}; "
                f"org {policy.org_id} has no active policy until one is activated"
            )
        return policy
