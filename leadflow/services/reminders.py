"""
Reminders for leads waiting on dispatch.

A lead that has sat in HandToDispatch longer than handoff_reminder_hours
gets a notification to its owner and a timeline entry. The job is pure
given `now`, so it can be driven without a real clock.

Once a week every dispatcher also gets one digest listing the leads still
waiting on them in HandToDispatch.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.config import settings
from leadflow.models import ActivityType, Department, Lead, LeadHandoff, LeadStatus
from leadflow.services.notifier import (
    NOTIFICATION_CREATED,
    Notifier,
    notify_committed,
    user_audience,
)
from leadflow.services.repositories import UserRepository
from leadflow.utils.activity import log_activity

logger = logging.getLogger(__name__)


async def find_stale_handoffs(db: AsyncSession, cutoff: datetime) -> List[Lead]:
    result = await db.execute(
        select(Lead)
        .where(
            and_(
                Lead.status == LeadStatus.HAND_TO_DISPATCH,
                Lead.hand_to_dispatch_at.is_not(None),
                Lead.hand_to_dispatch_at <= cutoff,
            )
        )
        .order_by(Lead.hand_to_dispatch_at, Lead.id)
    )
    return list(result.scalars().all())


async def send_handoff_reminders(
    db: AsyncSession,
    now: datetime,
    notifier: Notifier,
    reminder_hours: Optional[int] = None,
) -> List[int]:
    """
    Notify owners of leads stuck in HandToDispatch.

    Returns:
        IDs of the leads a reminder was sent for
    """
    hours = settings.handoff_reminder_hours if reminder_hours is None else reminder_hours
    cutoff = now - timedelta(hours=hours)
    stale = await find_stale_handoffs(db, cutoff)

    for lead in stale:
        log_activity(
            db=db,
            user_id=None,
            activity_type=ActivityType.REMINDER_SENT,
            entity_type="lead",
            entity_id=lead.id,
            details={"reason": "handoff_pending", "hours": hours},
        )
    await db.commit()

    for lead in stale:
        await notify_committed(
            notifier,
            NOTIFICATION_CREATED,
            {
                "type": "handoff_pending",
                "lead_id": lead.id,
                "company_name": lead.company_name,
                "message": f"{lead.company_name} has waited over {hours}h for dispatch",
            },
            user_audience(lead.assigned_to),
        )

    if stale:
        logger.info(f"Sent {len(stale)} handoff reminders")
    return [lead.id for lead in stale]


async def find_waiting_for_dispatcher(db: AsyncSession, dispatcher_id: int) -> List[Lead]:
    """HandToDispatch leads assigned to the dispatcher or handed off to them."""
    handed_to = select(LeadHandoff.lead_id).where(LeadHandoff.dispatcher_id == dispatcher_id)
    result = await db.execute(
        select(Lead)
        .where(
            and_(
                Lead.status == LeadStatus.HAND_TO_DISPATCH,
                or_(Lead.assigned_to == dispatcher_id, Lead.id.in_(handed_to)),
            )
        )
        .order_by(Lead.id)
    )
    return list(result.scalars().all())


async def send_weekly_handoff_digest(db: AsyncSession, notifier: Notifier) -> Dict[int, List[int]]:
    """
    Send each active dispatcher one digest of their waiting leads.

    Dispatchers with nothing waiting get no notification.

    Returns:
        {dispatcher_id: [lead ids]} for every digest sent
    """
    dispatchers = await UserRepository(db).list_active([Department.DISPATCH])

    waiting: Dict[int, List[Lead]] = {}
    for dispatcher in dispatchers:
        leads = await find_waiting_for_dispatcher(db, dispatcher.id)
        if not leads:
            continue
        waiting[dispatcher.id] = leads
        log_activity(
            db=db,
            user_id=None,
            activity_type=ActivityType.REMINDER_SENT,
            entity_type="user",
            entity_id=dispatcher.id,
            details={"reason": "weekly_handoff_digest", "lead_ids": [lead.id for lead in leads]},
        )
    await db.commit()

    for dispatcher_id, leads in waiting.items():
        await notify_committed(
            notifier,
            NOTIFICATION_CREATED,
            {
                "type": "weekly_handoff_digest",
                "count": len(leads),
                "lead_ids": [lead.id for lead in leads],
                "lead_company_names": [lead.company_name for lead in leads],
                "message": f"You have {len(leads)} leads waiting in HandToDispatch",
            },
            user_audience(dispatcher_id),
        )

    if waiting:
        logger.info(f"Sent weekly handoff digest to {len(waiting)} dispatchers")
    return {dispatcher_id: [lead.id for lead in leads] for dispatcher_id, leads in waiting.items()}
