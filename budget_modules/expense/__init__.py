"""Expenses (pengeluaran): recording, auto-allocation and submission."""

from budget_modules.expense.models import (
    ExpenseCreated,
    ExpenseDraft,
    ExpenseSummary,
    ExpenseView,
)
from budget_modules.expense.service import AUTO_ALLOCATION_REASON, ExpenseService
from budget_modules.expense.submission import ExpenseSubmitter

__all__ = [
    "ExpenseService",
    "ExpenseSubmitter",
    "ExpenseDraft",
    "ExpenseView",
    "ExpenseCreated",
    "ExpenseSummary",
    "AUTO_ALLOCATION_REASON",
]
