"""Aggregate queries shared by the module services."""

from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from budget_kernel.models import AdditionalAllocation, Expense

ZERO = Decimal("0")


def as_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def spent_by_budget(session: Session, budget_ids: Iterable[str] | None = None) -> dict[str, Decimal]:
    """Sum of expense amounts per budget id (missing ids mean zero)."""
    stmt = select(Expense.budget_id, func.sum(Expense.amount)).group_by(Expense.budget_id)
    if budget_ids is not None:
        stmt = stmt.where(Expense.budget_id.in_(list(budget_ids)))
    return {budget_id: as_decimal(total) for budget_id, total in session.execute(stmt)}


def additional_by_budget(
    session: Session, budget_ids: Iterable[str] | None = None
) -> dict[str, Decimal]:
    """Sum of additional allocation amounts per budget id."""
    stmt = select(
        AdditionalAllocation.original_budget_id, func.sum(AdditionalAllocation.amount)
    ).group_by(AdditionalAllocation.original_budget_id)
    if budget_ids is not None:
        stmt = stmt.where(AdditionalAllocation.original_budget_id.in_(list(budget_ids)))
    return {budget_id: as_decimal(total) for budget_id, total in session.execute(stmt)}


def spent_by_allocation(
    session: Session, allocation_ids: Iterable[str] | None = None
) -> dict[str, Decimal]:
    """Sum of expense amounts linked to each additional allocation."""
    stmt = (
        select(Expense.additional_allocation_id, func.sum(Expense.amount))
        .where(Expense.additional_allocation_id.is_not(None))
        .group_by(Expense.additional_allocation_id)
    )
    if allocation_ids is not None:
        stmt = stmt.where(Expense.additional_allocation_id.in_(list(allocation_ids)))
    return {alloc_id: as_decimal(total) for alloc_id, total in session.execute(stmt)}
