"""
Lead lifecycle: guarded status transitions.

    New -> InProgress -> FollowUp -> HandToDispatch -> Active

Lost can be reached from every state except Lost itself. Leads only move
back within the sales working states (FollowUp <-> InProgress) or from
HandToDispatch to FollowUp when dispatch bounces them. Active only moves
to Lost.

Handing a lead to dispatch requires enough logged call attempts and a real
MC number. Activating a handed-off lead checks the MC number again, since
it can be edited after the handoff. Guards run before anything is modified.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.config import settings
from leadflow.exceptions import (
    InsufficientCallAttempts,
    InvalidTransition,
    MissingMCNumber,
    ValidationError,
)
from leadflow.models import (
    Activity,
    ActivityType,
    HandoffStatus,
    Lead,
    LeadHandoff,
    LeadSalesUser,
    LeadStatus,
    SalesRole,
    User,
)
from leadflow.services.notifier import (
    LEAD_STATUS_CHANGED,
    LEAD_UPDATED,
    Notifier,
    notify_committed,
    org_audience,
    user_audience,
)
from leadflow.services.repositories import LeadRepository
from leadflow.utils.activity import log_activity

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[LeadStatus, FrozenSet[LeadStatus]] = {
    LeadStatus.NEW: frozenset({
        LeadStatus.IN_PROGRESS,
        LeadStatus.FOLLOW_UP,
        LeadStatus.HAND_TO_DISPATCH,
        LeadStatus.LOST,
    }),
    LeadStatus.IN_PROGRESS: frozenset({
        LeadStatus.FOLLOW_UP,
        LeadStatus.HAND_TO_DISPATCH,
        LeadStatus.LOST,
    }),
    LeadStatus.FOLLOW_UP: frozenset({
        LeadStatus.IN_PROGRESS,
        LeadStatus.HAND_TO_DISPATCH,
        LeadStatus.LOST,
    }),
    LeadStatus.HAND_TO_DISPATCH: frozenset({
        LeadStatus.ACTIVE,
        LeadStatus.FOLLOW_UP,
        LeadStatus.LOST,
    }),
    LeadStatus.ACTIVE: frozenset({LeadStatus.LOST}),
    LeadStatus.LOST: frozenset(),
}

# First entry into these states is stamped on the lead
FIRST_ENTRY_TIMESTAMPS = {
    LeadStatus.IN_PROGRESS: "in_progress_at",
    LeadStatus.HAND_TO_DISPATCH: "hand_to_dispatch_at",
    LeadStatus.ACTIVE: "activated_at",
}


def check_handoff_guards(lead: Lead, min_call_attempts: int) -> None:
    """Raise PreconditionFailed unless the lead may be handed to dispatch."""
    attempts = lead.call_attempts or 0
    if attempts < min_call_attempts:
        raise InsufficientCallAttempts(current=attempts, required=min_call_attempts)
    check_mc_number(lead)


def check_mc_number(lead: Lead) -> None:
    if not lead.has_mc_number:
        raise MissingMCNumber(current=lead.mc_number)


def can_transition(current: LeadStatus, target: LeadStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


@dataclass
class TransitionResult:
    lead: Lead
    previous_status: LeadStatus
    activity: Activity
    handoff: Optional[LeadHandoff] = None


class LeadLifecycleController:
    """Validates and applies lead status changes."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[Notifier] = None,
        min_call_attempts: Optional[int] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.leads = LeadRepository(db)
        self.min_call_attempts = (
            settings.handoff_min_call_attempts
            if min_call_attempts is None
            else min_call_attempts
        )

    async def transition(
        self,
        lead_id: int,
        target_status,
        actor_id: int,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """
        Move a lead to target_status.

        Raises:
            ValidationError: target_status is not a lead status
            NotFoundError: no such lead
            InsufficientCallAttempts / MissingMCNumber: handoff guard failed
            InvalidTransition: target not reachable from the current status
        """
        try:
            target = LeadStatus(target_status)
        except ValueError:
            raise ValidationError(
                f"Unknown lead status {target_status!r}",
                details={"field": "status", "allowed": [s.value for s in LeadStatus]},
            )

        lead = await self.leads.get(lead_id, for_update=True)
        previous = lead.status

        if target == LeadStatus.HAND_TO_DISPATCH:
            check_handoff_guards(lead, self.min_call_attempts)

        if not can_transition(previous, target):
            raise InvalidTransition(previous.value, target.value)

        if previous == LeadStatus.HAND_TO_DISPATCH and target == LeadStatus.ACTIVE:
            check_mc_number(lead)

        now = datetime.now(timezone.utc)
        lead.status = target
        stamp = FIRST_ENTRY_TIMESTAMPS.get(target)
        if stamp and getattr(lead, stamp) is None:
            setattr(lead, stamp, now)

        handoff = None
        details = None
        if target == LeadStatus.HAND_TO_DISPATCH:
            handoff = LeadHandoff(
                lead_id=lead.id,
                sales_rep_id=actor_id,
                status=HandoffStatus.PENDING,
                handoff_date=now,
                handoff_notes=notes,
            )
            self.db.add(handoff)
            await self.db.flush()
            details = {"handoff_id": handoff.id}

        activity = log_activity(
            db=self.db,
            user_id=actor_id,
            activity_type=ActivityType.STATUS_CHANGED,
            entity_type="lead",
            entity_id=lead.id,
            previous_status=previous.value,
            next_status=target.value,
            notes=notes,
            details=details,
        )
        await self.db.commit()

        logger.info(f"Lead {lead.id} moved {previous.value} -> {target.value} by user {actor_id}")
        await self._announce(lead, previous)

        return TransitionResult(
            lead=lead,
            previous_status=previous,
            activity=activity,
            handoff=handoff,
        )

    async def log_call_attempt(self, lead_id: int, actor_id: int, notes: Optional[str] = None) -> Lead:
        """Count one more call attempt towards the handoff guard."""
        lead = await self.leads.get(lead_id, for_update=True)
        lead.call_attempts = (lead.call_attempts or 0) + 1

        log_activity(
            db=self.db,
            user_id=actor_id,
            activity_type=ActivityType.CALL_LOGGED,
            entity_type="lead",
            entity_id=lead.id,
            notes=notes,
            details={"call_attempts": lead.call_attempts},
        )
        await self.db.commit()

        await notify_committed(
            self.notifier,
            LEAD_UPDATED,
            {"lead_id": lead.id, "call_attempts": lead.call_attempts},
            org_audience(lead.org_id),
        )
        return lead

    async def assign_sales_users(
        self,
        lead_id: int,
        actor_id: int,
        starter_id: Optional[int] = None,
        closer_id: Optional[int] = None,
    ) -> list:
        """Set the starter and/or closer of a lead, replacing earlier ones."""
        lead = await self.leads.get(lead_id, for_update=True)

        wanted = {SalesRole.STARTER: starter_id, SalesRole.CLOSER: closer_id}
        for role, user_id in wanted.items():
            if user_id is None:
                continue
            if not await self.db.get(User, user_id):
                raise ValidationError(
                    f"User {user_id} does not exist",
                    details={"field": f"{role.value}_id", "value": user_id},
                )

        existing = await self.leads.sales_users(lead.id)
        by_role = {assignment.role: assignment for assignment in existing}
        for role, user_id in wanted.items():
            if user_id is None:
                continue
            if role in by_role:
                by_role[role].user_id = user_id
            else:
                self.db.add(LeadSalesUser(lead_id=lead.id, user_id=user_id, role=role))

        log_activity(
            db=self.db,
            user_id=actor_id,
            activity_type=ActivityType.SALES_USERS_ASSIGNED,
            entity_type="lead",
            entity_id=lead.id,
            details={"starter_id": starter_id, "closer_id": closer_id},
        )
        await self.db.commit()
        return await self.leads.sales_users(lead.id)

    async def timeline(self, lead_id: int) -> list:
        """Activity entries for the lead, oldest first."""
        lead = await self.leads.get(lead_id)
        result = await self.db.execute(
            select(Activity)
            .where(Activity.entity_type == "lead", Activity.entity_id == lead.id)
            .order_by(Activity.created_at, Activity.id)
        )
        return list(result.scalars().all())

    async def _announce(self, lead: Lead, previous: LeadStatus) -> None:
        if not self.notifier:
            return
        payload = {
            "lead_id": lead.id,
            "previous_status": previous.value,
            "status": lead.status.value,
        }
        audience = org_audience(lead.org_id)
        await notify_committed(self.notifier, LEAD_UPDATED, payload, audience)
        await notify_committed(self.notifier, LEAD_STATUS_CHANGED, payload, audience)
        if lead.assigned_to:
            await notify_committed(
                self.notifier, LEAD_STATUS_CHANGED, payload, user_audience(lead.assigned_to)
            )
