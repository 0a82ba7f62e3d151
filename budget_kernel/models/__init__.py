"""ORM models for budgets, expenses, additional allocations and usage history."""

from budget_kernel.models.allocation import AdditionalAllocation
from budget_kernel.models.budget import Budget
from budget_kernel.models.expense import Expense
from budget_kernel.models.usage_history import BudgetUsageHistory

__all__ = [
    "Budget",
    "Expense",
    "AdditionalAllocation",
    "BudgetUsageHistory",
    "import_all_models",
]


def import_all_models() -> None:
    """Ensure every model is registered on Base.metadata (imports above do it)."""

