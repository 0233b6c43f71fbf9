"""
Notification port.

Lifecycle and commission services announce what happened through a
Notifier; how it reaches browsers (sockets, push, email) is somebody
else's job. The default implementation only logs.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol

logger = logging.getLogger(__name__)

# Event names shared with the dashboard
LEAD_UPDATED = "lead:updated"
LEAD_STATUS_CHANGED = "lead:status_changed"
COMMISSION_CALCULATED = "commission:calculated"
POLICY_ACTIVATED = "policy:activated"
NOTIFICATION_CREATED = "notification:created"


def user_audience(user_id: int) -> str:
    return f"user:{user_id}"


def org_audience(org_id: Optional[int]) -> str:
    return f"org:{org_id}"


class Notifier(Protocol):
    async def notify(self, event: str, payload: dict[str, Any], audience: str) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes every event to the log."""

    async def notify(self, event: str, payload: dict[str, Any], audience: str) -> None:
        logger.info(f"Notify {audience}: {event} {payload}")


@dataclass
class SentNotification:
    event: str
    payload: dict[str, Any]
    audience: str


@dataclass
class RecordingNotifier:
    """Keeps sent events in memory. Used by tests and local tooling."""

    sent: List[SentNotification] = field(default_factory=list)

    async def notify(self, event: str, payload: dict[str, Any], audience: str) -> None:
        self.sent.append(SentNotification(event=event, payload=payload, audience=audience))

    def events(self) -> List[str]:
        return [n.event for n in self.sent]


_notifier: Notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    """FastAPI dependency returning the configured notifier."""
    return _notifier


def set_notifier(notifier: Notifier) -> None:
    """Swap the notifier (transport wiring at startup)."""
    global _notifier
    _notifier = notifier


async def notify_committed(
    notifier: Optional[Notifier],
    event: str,
    payload: dict[str, Any],
    audience: str,
) -> bool:
    """
    Send an event for a change that is already committed.

    Delivery errors are logged and reported as False; the caller's write
    stands either way.
    """
    if notifier is None:
        return False
    try:
        await notifier.notify(event, payload, audience)
    except Exception as e:
        logger.error(f"Failed to deliver {event} to {audience}: {e}")
        return False
    return True
