"""
Clock-in / clock-out events, kept in an append-only table.

A user alternates IN and OUT; a second IN without an OUT in between (or
the reverse) is rejected.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.exceptions import ValidationError
from leadflow.models import ClockEvent, ClockEventType
from leadflow.services.repositories import UserRepository

logger = logging.getLogger(__name__)


class ClockEventRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def last_event(self, user_id: int) -> Optional[ClockEvent]:
        result = await self.db.execute(
            select(ClockEvent)
            .where(ClockEvent.user_id == user_id)
            .order_by(ClockEvent.timestamp.desc(), ClockEvent.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: int, since: Optional[datetime] = None) -> List[ClockEvent]:
        await UserRepository(self.db).get(user_id)
        query = select(ClockEvent).where(ClockEvent.user_id == user_id)
        if since is not None:
            query = query.where(ClockEvent.timestamp >= since)
        result = await self.db.execute(query.order_by(ClockEvent.timestamp, ClockEvent.id))
        return list(result.scalars().all())

    async def record(
        self,
        user_id: int,
        event_type: ClockEventType,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        ip_address: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> ClockEvent:
        """Append a clock event. Raises ValidationError on IN/IN or OUT/OUT."""
        last = await self.last_event(user_id)
        if last is None and event_type == ClockEventType.OUT:
            raise ValidationError(
                "Cannot clock out before clocking in",
                details={"field": "type", "value": event_type.value},
            )
        if last is not None and last.event_type == event_type:
            raise ValidationError(
                f"Already clocked {event_type.value.lower()}",
                details={"field": "type", "value": event_type.value, "last_event_id": last.id},
            )

        event = ClockEvent(
            user_id=user_id,
            event_type=event_type,
            timestamp=timestamp or datetime.now(timezone.utc),
            location=location,
            notes=notes,
            ip_address=ip_address,
        )
        self.db.add(event)
        await self.db.commit()

        logger.info(f"User {user_id} clocked {event_type.value}")
        return event
