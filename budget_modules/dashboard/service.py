"""
Dashboard Service (``budget_modules.dashboard.service``).

Read-only figures behind the operator dashboard, the supervisor overview
and the general-ledger budget filter.  Nothing here writes or marks pages
stale; a ``BudgetObserver`` watching all budgets is what tells the
dashboard to call back in after an expense lands.

"This month" is the calendar month of the injected clock's ``now()``,
compared against expense dates (not submission times).
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.dates import month_abbreviation
from budget_kernel.logging_config import get_logger
from budget_kernel.models import AdditionalAllocation, Budget, Expense
from budget_modules._queries import ZERO, as_decimal
from budget_modules.dashboard.models import (
    Activity,
    ActivityKind,
    BudgetRef,
    DashboardSummary,
    MonthlyExpense,
    RecentTransaction,
    SupervisorOverview,
)

logger = get_logger("modules.dashboard.service")

DEFAULT_RECENT_LIMIT = 5
DEFAULT_CHART_MONTHS = 6

STATUS_WITH_ALLOCATION = "Dengan Alokasi Tambahan"
STATUS_REGULAR = "Reguler"
STATUS_BUDGET = "Anggaran"
STATUS_APPROVED = "Disetujui"
STATUS_PENDING = "Menunggu Persetujuan"

_HUNDRED = Decimal("100")
_CENTS = Decimal("0.01")


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """``(2024, 1), -1`` -> ``(2023, 12)``."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Half-open ``[first day, first day of next month)``."""
    next_year, next_month = shift_month(year, month, 1)
    return date(year, month, 1), date(next_year, next_month, 1)


def growth_percent(current: Decimal, previous: Decimal) -> Decimal:
    if previous <= 0:
        return ZERO
    return ((current - previous) / previous * _HUNDRED).quantize(_CENTS, ROUND_HALF_UP)


class DashboardService:
    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def _expense_total(self, start: date | None = None, end: date | None = None) -> Decimal:
        stmt = select(func.sum(Expense.amount))
        if start is not None:
            stmt = stmt.where(Expense.date >= start)
        if end is not None:
            stmt = stmt.where(Expense.date < end)
        return as_decimal(self._session.scalar(stmt))

    def _count(self, model) -> int:
        return self._session.scalar(select(func.count()).select_from(model)) or 0

    def get_summary(self) -> DashboardSummary:
        today = self._clock.now().date()
        current_start, current_end = month_bounds(today.year, today.month)
        previous_start, _ = month_bounds(*shift_month(today.year, today.month, -1))

        current = self._expense_total(current_start, current_end)
        previous = self._expense_total(previous_start, current_start)
        summary = DashboardSummary(
            total_expenses=self._expense_total(),
            current_month_total=current,
            previous_month_total=previous,
            expense_growth=growth_percent(current, previous),
            budget_count=self._count(Budget),
            allocation_count=self._count(AdditionalAllocation),
        )
        logger.debug("dashboard_summary_computed", extra={
            "total_expenses": summary.total_expenses,
            "expense_growth": summary.expense_growth,
        })
        return summary

    def get_recent_transactions(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[RecentTransaction]:
        """Latest expenses by expense date, then submission time."""
        if limit < 1:
            raise ValueError("limit must be at least 1")
        rows = self._session.scalars(
            select(Expense)
            .order_by(Expense.date.desc(), Expense.submitted_at.desc(), Expense.id.desc())
            .limit(limit)
        )
        return [
            RecentTransaction(e.id, e.description, e.date, e.amount)
            for e in rows
        ]

    def get_monthly_expenses(self, months: int = DEFAULT_CHART_MONTHS) -> list[MonthlyExpense]:
        """
        Expense totals for the last ``months`` calendar months, oldest first,
        including the current month.  Months without expenses are zero.
        """
        if months < 1:
            raise ValueError("months must be at least 1")
        today = self._clock.now().date()
        keys = [shift_month(today.year, today.month, -offset) for offset in range(months - 1, -1, -1)]
        start, _ = month_bounds(*keys[0])
        _, end = month_bounds(*keys[-1])

        totals = dict.fromkeys(keys, ZERO)
        rows = self._session.execute(
            select(Expense.date, Expense.amount).where(Expense.date >= start, Expense.date < end)
        )
        for expense_date, amount in rows:
            totals[(expense_date.year, expense_date.month)] += as_decimal(amount)

        return [
            MonthlyExpense(year, month, month_abbreviation(month), totals[(year, month)])
            for year, month in keys
        ]

    def list_budgets_with_expenses(self) -> list[BudgetRef]:
        """Budgets that have at least one expense, by name (ledger filter)."""
        rows = self._session.execute(
            select(Budget.id, Budget.name)
            .where(Budget.id.in_(select(Expense.budget_id).distinct()))
            .order_by(Budget.name, Budget.id)
        )
        return [BudgetRef(budget_id, name) for budget_id, name in rows]

    def list_activities(self, kind: ActivityKind | str | None = None) -> list[Activity]:
        """
        Expenses, budgets and allocations as one feed, newest date first.

        Entries sharing a date keep feed order: expenses (latest submitted
        first), then budgets (latest created first), then allocations.
        """
        if kind is not None:
            kind = ActivityKind(kind)

        activities: list[Activity] = []
        if kind in (None, ActivityKind.EXPENSE):
            for e in self._session.scalars(
                select(Expense).order_by(Expense.submitted_at.desc(), Expense.id.desc())
            ):
                activities.append(Activity(
                    id=e.id,
                    kind=ActivityKind.EXPENSE,
                    description=e.description,
                    amount=e.amount,
                    date=e.date,
                    operator=e.submitted_by,
                    status=STATUS_WITH_ALLOCATION if e.additional_allocation_id else STATUS_REGULAR,
                ))
        if kind in (None, ActivityKind.BUDGET):
            for b in self._session.scalars(
                select(Budget).order_by(Budget.created_at.desc(), Budget.id.desc())
            ):
                activities.append(Activity(
                    id=b.id,
                    kind=ActivityKind.BUDGET,
                    description=b.name,
                    amount=b.amount,
                    date=b.start_date,
                    operator=b.created_by,
                    status=STATUS_BUDGET,
                ))
        if kind in (None, ActivityKind.ADDITIONAL_ALLOCATION):
            for a in self._session.scalars(
                select(AdditionalAllocation).order_by(
                    AdditionalAllocation.request_date.desc(), AdditionalAllocation.id.desc()
                )
            ):
                activities.append(Activity(
                    id=a.id,
                    kind=ActivityKind.ADDITIONAL_ALLOCATION,
                    description=a.description,
                    amount=a.amount,
                    date=a.request_date,
                    operator=a.requested_by,
                    status=STATUS_APPROVED if a.approved_at else STATUS_PENDING,
                ))

        activities.sort(key=lambda activity: activity.date, reverse=True)
        return activities

    def get_supervisor_overview(self) -> SupervisorOverview:
        activities = self.list_activities()
        operators = {a.operator for a in activities if a.operator}
        overview = SupervisorOverview(
            summary=self.get_summary(),
            active_operator_count=len(operators),
            activity_count=len(activities),
            generated_at=self._clock.now(),
            activities=tuple(activities),
        )
        logger.info("supervisor_overview_computed", extra={
            "activity_count": overview.activity_count,
            "active_operator_count": overview.active_operator_count,
        })
        return overview
