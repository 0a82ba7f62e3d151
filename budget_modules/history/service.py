"""
Usage History Service (``budget_modules.history.service``).

Read side of the optional ``budget_usage_history`` table written by
``RevalidationTrigger.track_usage``.  Where the write side treats a missing
table as a skip, readers cannot produce anything meaningful and raise
``SchemaMissingError``.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from budget_kernel.exceptions import BudgetNotFoundError, SchemaMissingError
from budget_kernel.logging_config import get_logger
from budget_kernel.models import Budget, BudgetUsageHistory, Expense
from budget_modules._queries import ZERO
from budget_modules.history.models import (
    TimeFrame,
    UsageHistory,
    UsagePoint,
    UsageRecord,
    UsageSummary,
)

logger = get_logger("modules.history.service")

DEFAULT_HISTORY_LIMIT = 100
DEFAULT_RECENT_LIMIT = 10


def period_key(moment: datetime, time_frame: TimeFrame) -> str:
    """Bucket label for ``moment``; labels sort chronologically as strings."""
    if time_frame is TimeFrame.WEEKLY:
        year, week, _ = moment.isocalendar()
        return f"{year}-W{week:02d}"
    if time_frame is TimeFrame.MONTHLY:
        return f"{moment.year}-{moment.month:02d}"
    return moment.date().isoformat()


def group_usage(records, time_frame: TimeFrame) -> tuple[UsagePoint, ...]:
    """Sum amounts per period, oldest first, with a running total."""
    buckets: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for record in records:
        buckets[period_key(record.recorded_at, time_frame)] += record.amount

    points = []
    cumulative = ZERO
    for period in sorted(buckets):
        cumulative += buckets[period]
        points.append(UsagePoint(period, buckets[period], cumulative))
    return tuple(points)


def summarize(records) -> UsageSummary:
    if not records:
        return UsageSummary(0, ZERO, ZERO, ZERO, ZERO, None, None)
    amounts = [r.amount for r in records]
    total = sum(amounts, ZERO)
    moments = [r.recorded_at for r in records]
    return UsageSummary(
        total_records=len(records),
        total_amount=total,
        average_amount=total / len(records),
        max_amount=max(amounts),
        min_amount=min(amounts),
        first_recorded_at=min(moments),
        last_recorded_at=max(moments),
    )


class UsageHistoryService:
    def __init__(self, session: Session):
        self._session = session

    def get_history(
        self,
        budget_id: str,
        time_frame: TimeFrame | str = TimeFrame.DAILY,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> UsageHistory:
        """The ``limit`` most recent usage records of one budget, grouped for charting."""
        time_frame = TimeFrame(time_frame)
        self._require_table()
        budget = self._session.get(Budget, budget_id)
        if budget is None:
            raise BudgetNotFoundError(budget_id)

        records = self._records(limit, budget_id)
        logger.debug("usage_history_loaded", extra={
            "budget_id": budget_id,
            "time_frame": time_frame.value,
            "record_count": len(records),
        })
        return UsageHistory(
            budget_id=budget_id,
            budget_name=budget.name,
            time_frame=time_frame,
            records=records,
            chart=group_usage(records, time_frame),
            summary=summarize(records),
        )

    def get_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> tuple[UsageRecord, ...]:
        """Most recent usage across every budget."""
        self._require_table()
        return self._records(limit)

    def _require_table(self) -> None:
        table = BudgetUsageHistory.__tablename__
        if not inspect(self._session.connection()).has_table(table):
            raise SchemaMissingError(table)

    def _records(self, limit: int, budget_id: str | None = None) -> tuple[UsageRecord, ...]:
        stmt = (
            select(BudgetUsageHistory, Budget.name, Expense.description)
            .join(Budget, BudgetUsageHistory.budget_id == Budget.id)
            .outerjoin(Expense, BudgetUsageHistory.expense_id == Expense.id)
            .order_by(BudgetUsageHistory.recorded_at.desc(), BudgetUsageHistory.id.desc())
            .limit(limit)
        )
        if budget_id is not None:
            stmt = stmt.where(BudgetUsageHistory.budget_id == budget_id)
        return tuple(
            UsageRecord(
                id=row.id,
                budget_id=row.budget_id,
                budget_name=budget_name,
                expense_id=row.expense_id,
                expense_description=description,
                amount=row.amount,
                recorded_at=row.recorded_at,
            )
            for row, budget_name, description in self._session.execute(stmt)
        )
