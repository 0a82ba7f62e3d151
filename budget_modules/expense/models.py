"""Expense DTOs (``budget_modules.expense.models``)."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from budget_kernel.services.side_effects import SideEffectResult


@dataclass(frozen=True)
class ExpenseDraft:
    """
    Submitted expense form.

    ``amount`` may be the displayed Rupiah string from the form input;
    ``image_url`` is the uploaded receipt and is required.
    """

    budget_id: str
    description: str
    amount: Decimal | int | float | str
    date: date | str
    submitted_by: str
    image_url: str | None
    notes: str | None = None


@dataclass(frozen=True)
class ExpenseView:
    id: str
    budget_id: str
    budget_name: str
    description: str
    amount: Decimal
    date: date
    submitted_by: str
    submitted_at: datetime | None
    notes: str | None = None
    additional_allocation_id: str | None = None
    image_url: str | None = None
    # Populated by ExpenseService.get_expense only
    allocation_amount: Decimal | None = None
    allocation_reason: str | None = None


@dataclass(frozen=True)
class ExpenseCreated:
    """
    Outcome of ``ExpenseService.create_expense``.

    The expense is committed whatever the side-effect results say;
    ``budget_impact`` and ``usage`` report the best-effort follow-ups.
    """

    expense: ExpenseView
    needs_allocation: bool
    additional_allocation_id: str | None
    budget_impact: SideEffectResult
    usage: SideEffectResult

    @property
    def budget_id(self) -> str:
        return self.expense.budget_id

    @property
    def expense_amount(self) -> Decimal:
        return self.expense.amount

    @property
    def budget_updated(self) -> bool:
        return self.budget_impact.is_success


@dataclass(frozen=True)
class ExpenseSummary:
    total: Decimal
    approved: Decimal
    with_allocation: Decimal
    expense_count: int
