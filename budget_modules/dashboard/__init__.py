"""Dashboard: read models for the operator dashboard and supervisor overview."""

from budget_modules.dashboard.models import (
    Activity,
    ActivityKind,
    BudgetRef,
    DashboardSummary,
    MonthlyExpense,
    RecentTransaction,
    SupervisorOverview,
)
from budget_modules.dashboard.service import DashboardService

__all__ = [
    "DashboardService",
    "Activity",
    "ActivityKind",
    "BudgetRef",
    "DashboardSummary",
    "MonthlyExpense",
    "RecentTransaction",
    "SupervisorOverview",
]
