"""
Activity logging utilities.

Every state change a user or job makes is recorded on the timeline.
"""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.models.activity import Activity, ActivityType


def log_activity(
    db: AsyncSession,
    user_id: Optional[int],
    activity_type: ActivityType,
    entity_type: str,
    entity_id: int,
    previous_status: Optional[str] = None,
    next_status: Optional[str] = None,
    notes: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> Activity:
    """
    Record an activity.

    Args:
        db: Database session
        user_id: Actor, or None for scheduled jobs
        activity_type: What happened
        entity_type: Type of entity affected (e.g., "lead", "policy")
        entity_id: ID of the affected entity
        previous_status / next_status: For status changes
        notes: Free text supplied by the actor
        details: Additional structured context

    Returns:
        The pending Activity row
    """
    entry = Activity(
        user_id=user_id,
        activity_type=activity_type,
        entity_type=entity_type,
        entity_id=entity_id,
        previous_status=previous_status,
        next_status=next_status,
        notes=notes,
        details=details,
    )
    db.add(entry)
    # Note: commit happens in the calling service
    return entry


def get_client_ip(request) -> Optional[str]:
    """
    Extract client IP from request.

    Handles X-Forwarded-For header for reverse proxy setups.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP in the list is the client
        return forwarded_for.split(",")[0].strip()

    if hasattr(request, "client") and request.client:
        return request.client.host

    return None
