"""Additional-allocation DTOs (``budget_modules.allocation.models``)."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal


@dataclass(frozen=True)
class AllocationDraft:
    original_budget_id: str
    description: str
    reason: str
    amount: Decimal | int | str
    request_date: date | str
    requested_by: str
    related_expense_id: str | None = None


@dataclass(frozen=True)
class AllocationView:
    """An allocation with the amount already consumed by linked expenses."""

    id: str
    original_budget_id: str
    original_budget_name: str
    description: str
    reason: str
    amount: Decimal
    request_date: date
    requested_by: str
    requested_at: datetime | None
    spent_amount: Decimal
    available_amount: Decimal
    approved_by: str | None = None
    approved_at: datetime | None = None
    related_expense_id: str | None = None


@dataclass(frozen=True)
class AllocationSummary:
    total: Decimal
    allocation_count: int
