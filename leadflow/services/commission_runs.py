"""
Commission run store: one immutable snapshot per (user, month).

The first request for a month computes and stores the snapshot; every later
request rebuilds the response from the stored row without touching the
tier/penalty/bonus math. Deals are re-derived from current invoices.

Concurrent first-time requests are collapsed by the unique
(user_id, year, month) constraint: the insert is "on conflict do nothing"
and every caller re-reads the stored row afterwards, so all callers return
the same totals.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow.exceptions import (
    ComputationError,
    LeadflowError,
    NotFoundError,
    ValidationError,
)
from leadflow.models import ActivityType, CommissionRun, Department, User
from leadflow.schemas.commission import (
    CommissionDeal,
    CommissionStats,
    MonthlyCommissionResponse,
)
from leadflow.services.commission import (
    ZERO,
    CommissionCalculator,
    DealLine,
    MonthPeriod,
    money,
)
from leadflow.services.dispatch_commission import DispatchCommissionCalculator
from leadflow.services.notifier import (
    COMMISSION_CALCULATED,
    Notifier,
    notify_committed,
    user_audience,
)
from leadflow.services.repositories import UserRepository
from leadflow.services.sales_commission import SalesCommissionCalculator
from leadflow.utils.activity import log_activity

logger = logging.getLogger(__name__)

RUN_KEY = ["user_id", "year", "month"]


def _dialect_insert(dialect_name: str):
    """Insert construct supporting ON CONFLICT for the bound dialect, if any."""
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    return None


class CommissionRunStore:
    def __init__(self, db: AsyncSession, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier

    async def get(self, user_id: int, period: MonthPeriod) -> Optional[CommissionRun]:
        result = await self.db.execute(
            select(CommissionRun).where(
                and_(
                    CommissionRun.user_id == user_id,
                    CommissionRun.year == period.year,
                    CommissionRun.month == period.month,
                )
            )
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: int) -> List[CommissionRun]:
        result = await self.db.execute(
            select(CommissionRun)
            .where(CommissionRun.user_id == user_id)
            .order_by(CommissionRun.year.desc(), CommissionRun.month.desc())
        )
        return list(result.scalars().all())

    async def get_or_compute(
        self,
        user: User,
        period: MonthPeriod,
        calculator: CommissionCalculator,
        calculated_by: Optional[int] = None,
    ) -> Tuple[CommissionRun, bool]:
        """
        Return the stored run for (user, period), computing it on first use.

        Returns:
            (run, created) where created is False when the run already
            existed, including when a concurrent request stored it first.
        """
        run = await self.get(user.id, period)
        if run:
            return run, False

        result = await calculator.compute(user, period)
        values = {
            "org_id": user.org_id,
            "user_id": user.id,
            "year": period.year,
            "month": period.month,
            "calculated_by": calculated_by,
            "calculated_at": datetime.now(timezone.utc),
            **result.as_row(),
        }

        created = await self._insert_once(values)
        if created:
            log_activity(
                db=self.db,
                user_id=calculated_by,
                activity_type=ActivityType.COMMISSION_CALCULATED,
                entity_type="user",
                entity_id=user.id,
                details={
                    "month": period.label,
                    "total_commission": str(money(result.total_commission)),
                },
            )
        await self.db.commit()

        run = await self.get(user.id, period)
        if run is None:
            raise LeadflowError(
                f"Commission run for user {user.id} {period} vanished after insert",
                details={"user_id": user.id, "month": period.label},
            )

        if created:
            logger.info(
                f"Stored {run.run_type.value} commission run {run.id} for user {user.id} "
                f"{period}: total {run.total_commission}"
            )
            await notify_committed(
                self.notifier,
                COMMISSION_CALCULATED,
                {
                    "user_id": user.id,
                    "month": period.label,
                    "run_id": run.id,
                    "total_commission": str(run.total_commission),
                },
                user_audience(user.id),
            )
        else:
            logger.info(f"Commission run for user {user.id} {period} was stored concurrently; reusing it")

        return run, created

    async def _insert_once(self, values: dict) -> bool:
        """Insert the run unless one exists for the key. True if this call inserted it."""
        insert = _dialect_insert(self.db.get_bind().dialect.name)
        if insert is not None:
            stmt = (
                insert(CommissionRun)
                .values(**values)
                .on_conflict_do_nothing(index_elements=RUN_KEY)
                .returning(CommissionRun.id)
            )
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none() is not None

        try:
            async with self.db.begin_nested():
                self.db.add(CommissionRun(**values))
            return True
        except IntegrityError:
            return False


def calculator_for(user: User, db: AsyncSession) -> CommissionCalculator:
    """Pick the calculator for the user's department."""
    if user.department == Department.SALES:
        return SalesCommissionCalculator(db)
    if user.department == Department.DISPATCH:
        return DispatchCommissionCalculator(db)
    raise ValidationError(
        f"User {user.id} is not in a commissioned department",
        details={"user_id": user.id, "department": user.department.value},
    )


def build_response(
    user_id: int,
    user_name: str,
    department: str,
    run: CommissionRun,
    deals: List[DealLine],
    cached: bool,
) -> MonthlyCommissionResponse:
    """Response for a stored run. Totals always come from the row."""
    if deals:
        avg = money(Decimal(run.total_commission) / len(deals))
    else:
        avg = money(ZERO)

    return MonthlyCommissionResponse(
        user_id=user_id,
        user_name=user_name,
        department=department,
        month=run.period,
        run_id=run.id,
        policy_id=run.policy_id,
        base_commission=run.base_commission,
        adjusted_commission=run.adjusted_commission,
        rep_of_month_bonus=run.rep_of_month_bonus,
        active_trucks_bonus=run.active_trucks_bonus,
        team_lead_bonus=run.team_lead_bonus,
        total_commission=run.total_commission,
        penalty_applied=run.penalty_applied,
        calculation_details=run.calculation_details or {},
        deals=[
            CommissionDeal(
                invoice_id=deal.invoice_id,
                lead_id=deal.lead_id,
                lead_name=deal.lead_name,
                amount=deal.amount,
                status=deal.status,
                created_at=deal.created_at,
                role=deal.role,
                commission=deal.commission,
            )
            for deal in deals
        ],
        stats=CommissionStats(
            total_deals=len(deals),
            active_leads=run.active_lead_count,
            avg_commission_per_deal=avg,
        ),
        calculated_at=run.calculated_at,
        calculated_by=run.calculated_by,
        cached=cached,
    )


def degraded_response(
    user_id: int,
    user_name: str,
    department: str,
    period: MonthPeriod,
    error: str,
) -> MonthlyCommissionResponse:
    """Zeroed placeholder for a failed calculation, flagged as degraded."""
    return MonthlyCommissionResponse(
        user_id=user_id,
        user_name=user_name,
        department=department,
        month=period.label,
        degraded=True,
        error=error,
    )


async def get_monthly_commission(
    db: AsyncSession,
    user_id: int,
    month: Optional[str] = None,
    calculated_by: Optional[int] = None,
    notifier: Optional[Notifier] = None,
) -> MonthlyCommissionResponse:
    """
    Fetch or compute a user's commission for a month (current month by default).

    Bad input and unknown users raise. Anything failing during the
    calculation itself yields a degraded response instead.
    """
    period = MonthPeriod.parse(month) if month else MonthPeriod.current()
    user = await UserRepository(db).get(user_id)
    calculator = calculator_for(user, db)

    user_name = user.display_name
    department = user.department.value

    try:
        run, created = await CommissionRunStore(db, notifier).get_or_compute(
            user, period, calculator, calculated_by=calculated_by
        )
        deals = await calculator.load_deals(user, period, run)
        return build_response(user_id, user_name, department, run, deals, cached=not created)
    except (NotFoundError, ValidationError):
        raise
    except LeadflowError as e:
        logger.warning(f"Commission for user {user_id} {period} unavailable: {e.code} {e.message}")
        await db.rollback()
        return degraded_response(user_id, user_name, department, period, e.code)
    except Exception as e:
        logger.error(f"Commission calculation failed for user {user_id} {period}: {e}", exc_info=True)
        await db.rollback()
        return degraded_response(user_id, user_name, department, period, ComputationError.code)
