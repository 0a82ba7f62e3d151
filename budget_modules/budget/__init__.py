"""Budgets (anggaran): CRUD and derived spent/available totals."""

from budget_modules.budget.models import (
    BudgetDeletion,
    BudgetDraft,
    BudgetSummary,
    BudgetView,
)
from budget_modules.budget.service import BudgetService

__all__ = [
    "BudgetService",
    "BudgetDraft",
    "BudgetView",
    "BudgetSummary",
    "BudgetDeletion",
]
