"""Dashboard and supervisor read models (``budget_modules.dashboard.models``)."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class ActivityKind(str, Enum):
    EXPENSE = "expense"
    BUDGET = "budget"
    ADDITIONAL_ALLOCATION = "additionalAllocation"


@dataclass(frozen=True)
class DashboardSummary:
    """
    Headline figures for the dashboard cards.

    ``expense_growth`` is the percentage change of this month's expenses
    against last month's, rounded to two places; zero when last month had
    none.
    """

    total_expenses: Decimal
    current_month_total: Decimal
    previous_month_total: Decimal
    expense_growth: Decimal
    budget_count: int
    allocation_count: int


@dataclass(frozen=True)
class RecentTransaction:
    id: str
    description: str
    date: date
    amount: Decimal


@dataclass(frozen=True)
class MonthlyExpense:
    """One bar of the monthly expense chart; ``label`` is ``"Mar"``, ``"Agu"``..."""

    year: int
    month: int
    label: str
    amount: Decimal


@dataclass(frozen=True)
class BudgetRef:
    id: str
    name: str


@dataclass(frozen=True)
class Activity:
    """One line of the supervisor activity feed."""

    id: str
    kind: ActivityKind
    description: str
    amount: Decimal
    date: date
    operator: str
    status: str


@dataclass(frozen=True)
class SupervisorOverview:
    summary: DashboardSummary
    active_operator_count: int
    activity_count: int
    generated_at: datetime
    activities: tuple[Activity, ...]
