"""
Month-end commission generation for every commissioned user.

Each user is calculated in its own session so one failure never aborts
the batch; failures are collected and reported.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.exceptions import ComputationError, LeadflowError
from leadflow.models import Department
from leadflow.schemas.commission import BatchFailure, BatchReportResponse
from leadflow.services.commission import MonthPeriod
from leadflow.services.commission_runs import CommissionRunStore, calculator_for
from leadflow.services.notifier import Notifier
from leadflow.services.repositories import UserRepository

logger = logging.getLogger(__name__)

COMMISSIONED_DEPARTMENTS = [Department.SALES, Department.DISPATCH]


async def generate_monthly_commissions(
    session_factory: Callable[[], AsyncSession],
    period: MonthPeriod,
    calculated_by: Optional[int] = None,
    notifier: Optional[Notifier] = None,
) -> BatchReportResponse:
    """
    Compute (or reuse) the commission run of every active sales and dispatch
    user for the given month.
    """
    async with session_factory() as db:
        users = await UserRepository(db).list_active(COMMISSIONED_DEPARTMENTS)
        user_ids = [user.id for user in users]

    logger.info(f"Generating {period} commissions for {len(user_ids)} users")

    calculated, existing, failures = [], [], []
    for user_id in user_ids:
        async with session_factory() as db:
            try:
                user = await UserRepository(db).get(user_id)
                _, created = await CommissionRunStore(db, notifier).get_or_compute(
                    user, period, calculator_for(user, db), calculated_by=calculated_by
                )
            except LeadflowError as e:
                await db.rollback()
                logger.warning(f"Commission for user {user_id} {period} failed: {e.code} {e.message}")
                failures.append(BatchFailure(user_id=user_id, error=e.code, message=e.message))
                continue
            except Exception as e:
                await db.rollback()
                logger.error(f"Commission for user {user_id} {period} crashed: {e}", exc_info=True)
                failures.append(
                    BatchFailure(user_id=user_id, error=ComputationError.code, message=str(e))
                )
                continue

        (calculated if created else existing).append(user_id)

    logger.info(
        f"Commission batch {period}: {len(calculated)} calculated, "
        f"{len(existing)} already stored, {len(failures)} failed"
    )
    return BatchReportResponse(
        month=period.label,
        calculated=calculated,
        existing=existing,
        failures=failures,
    )
