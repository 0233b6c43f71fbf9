"""
Background job definitions using APScheduler.

Jobs include:
- Month-end commission generation (previous month, 02:00 on the 1st)
- Reminders for leads waiting on dispatch (daily 10:00)
- Weekly digest of waiting leads for each dispatcher (Monday 10:00)
"""

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from leadflow.config import settings
from leadflow.db import AsyncSessionLocal, get_db_context
from leadflow.services.batch import generate_monthly_commissions
from leadflow.services.commission import MonthPeriod
from leadflow.services.notifier import get_notifier
from leadflow.services.reminders import send_handoff_reminders, send_weekly_handoff_digest

logger = logging.getLogger(__name__)

MONTHLY_COMMISSIONS_CRON = "0 2 1 * *"
HANDOFF_REMINDERS_CRON = "0 10 * * *"
WEEKLY_HANDOFF_DIGEST_CRON = "0 10 * * mon"

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone=settings.scheduler_timezone)


def on_schedule(
    cron_expr: str,
    handler: Callable[[], Awaitable[None]],
    job_id: Optional[str] = None,
    name: Optional[str] = None,
) -> None:
    """Run handler whenever the crontab expression fires."""
    scheduler.add_job(
        handler,
        trigger=CronTrigger.from_crontab(cron_expr, timezone=settings.scheduler_timezone),
        id=job_id or handler.__name__,
        name=name or handler.__name__,
        replace_existing=True,
    )


async def monthly_commissions_job(now: Optional[datetime] = None):
    """Close the previous month's commissions for every commissioned user."""
    period = MonthPeriod.containing(now or datetime.now(timezone.utc)).previous()
    logger.info(f"Running monthly commission job for {period}")
    try:
        report = await generate_monthly_commissions(
            AsyncSessionLocal, period, notifier=get_notifier()
        )
        if report.failures:
            logger.warning(
                f"Monthly commission job {period}: {len(report.failures)} users failed"
            )
    except Exception as e:
        logger.error(f"Monthly commission job error: {e}")


async def handoff_reminder_job(now: Optional[datetime] = None):
    """Remind owners of leads stuck in HandToDispatch."""
    logger.debug("Running handoff reminder job")
    try:
        async with get_db_context() as db:
            sent = await send_handoff_reminders(
                db, now or datetime.now(timezone.utc), get_notifier()
            )
            if sent:
                logger.info(f"Handoff reminder job: reminded {len(sent)} leads")
    except Exception as e:
        logger.error(f"Handoff reminder job error: {e}")


async def weekly_handoff_digest_job():
    """Tell every dispatcher which leads are still waiting on them."""
    logger.debug("Running weekly handoff digest job")
    try:
        async with get_db_context() as db:
            sent = await send_weekly_handoff_digest(db, get_notifier())
            if sent:
                logger.info(f"Weekly handoff digest job: notified {len(sent)} dispatchers")
    except Exception as e:
        logger.error(f"Weekly handoff digest job error: {e}")


def setup_scheduler():
    """
    Configure and add all scheduled jobs.

    Called during application startup.
    """
    on_schedule(
        MONTHLY_COMMISSIONS_CRON,
        monthly_commissions_job,
        job_id="monthly_commissions",
        name="Generate previous month's commissions",
    )
    on_schedule(
        HANDOFF_REMINDERS_CRON,
        handoff_reminder_job,
        job_id="handoff_reminders",
        name="Remind about pending dispatch handoffs",
    )
    on_schedule(
        WEEKLY_HANDOFF_DIGEST_CRON,
        weekly_handoff_digest_job,
        job_id="weekly_handoff_digest",
        name="Weekly digest of leads waiting on dispatch",
    )

    logger.info("Scheduler configured with jobs")
