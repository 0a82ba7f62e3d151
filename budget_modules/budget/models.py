"""
Budget DTOs (``budget_modules.budget.models``).

Frozen value objects returned by ``BudgetService``; no I/O.  All monetary
fields are ``Decimal``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal


@dataclass(frozen=True)
class BudgetDraft:
    """Input for creating a budget. ``amount`` may be a displayed Rupiah string."""

    name: str
    amount: Decimal | int | str
    start_date: date | str
    created_by: str
    description: str | None = None


@dataclass(frozen=True)
class BudgetView:
    """A budget with its derived figures."""

    id: str
    name: str
    amount: Decimal
    start_date: date
    created_by: str
    created_at: datetime | None
    spent_amount: Decimal
    additional_amount: Decimal
    available_amount: Decimal
    description: str | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class BudgetSummary:
    """Totals across every budget."""

    total_budget: Decimal
    total_spent: Decimal
    total_additional: Decimal
    total_available: Decimal
    budget_count: int


@dataclass(frozen=True)
class BudgetDeletion:
    """What ``delete_budget_with_expenses`` removed."""

    budget_id: str
    deleted_expenses: int
    deleted_allocations: int
    deleted_usage_records: int
