"""
Budget Module Service (``budget_modules.budget.service``).

Responsibility
--------------
CRUD for budgets (anggaran) plus the derived figures the list and summary
pages show: spent, additional and available amounts.

Architecture position
---------------------
**Modules layer**.  Called by mutation handlers; owns the transaction
boundary and marks the affected pages stale once the commit succeeded.

Invariants enforced
-------------------
* Each public mutation commits on success and rolls back on exception.
* ``available = amount + additional - spent``; all three derived by SQL
  aggregates, never stored.
* A budget referenced by expenses or allocations is deleted only through
  ``delete_budget_with_expenses``.

Failure modes
-------------
* Invalid input -> ``ValidationError`` before any write.
* Unknown id -> ``BudgetNotFoundError``.
* Dependents present on plain delete -> ``BudgetHasDependentsError``.
"""

from sqlalchemy import delete, func, inspect, select, update
from sqlalchemy.orm import Session

from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.ids import BUDGET_PREFIX, generate_id
from budget_kernel.exceptions import BudgetHasDependentsError, BudgetNotFoundError
from budget_kernel.logging_config import get_logger
from budget_kernel.models import AdditionalAllocation, Budget, BudgetUsageHistory, Expense
from budget_kernel.services.page_cache import BUDGETS_PATH, EXPENSES_PATH, PageCache
from budget_modules._queries import ZERO, additional_by_budget, as_decimal, spent_by_budget
from budget_modules._validation import MIN_TEXT_LENGTH, FieldErrors, coerce_amount, coerce_date
from budget_modules.budget.models import (
    BudgetDeletion,
    BudgetDraft,
    BudgetSummary,
    BudgetView,
)

logger = get_logger("modules.budget.service")

_UPDATABLE_FIELDS = frozenset({"name", "amount", "start_date", "description"})


def to_view(budget: Budget, spent, additional) -> BudgetView:
    return BudgetView(
        id=budget.id,
        name=budget.name,
        amount=budget.amount,
        start_date=budget.start_date,
        created_by=budget.created_by,
        created_at=budget.created_at,
        spent_amount=spent,
        additional_amount=additional,
        available_amount=budget.amount + additional - spent,
        description=budget.description,
        updated_at=budget.updated_at,
    )


class BudgetService:
    """
    Budget CRUD and totals.

    Contract
    --------
    * Mutations return ``BudgetView`` / ``BudgetDeletion`` DTOs, never ORM
      instances.
    * Page-cache marks happen after commit, so a failed write leaves the
      cached pages untouched.
    """

    def __init__(
        self,
        session: Session,
        page_cache: PageCache,
        clock: Clock | None = None,
    ):
        self._session = session
        self._page_cache = page_cache
        self._clock = clock or SystemClock()

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_budget(self, draft: BudgetDraft) -> BudgetView:
        errors = FieldErrors("Budget")
        errors.require_text("name", draft.name, MIN_TEXT_LENGTH)
        amount = coerce_amount(draft.amount)
        errors.require_positive("amount", amount)
        start_date = coerce_date(draft.start_date)
        errors.require_date("start_date", start_date)
        errors.require_text("created_by", draft.created_by)
        errors.raise_if_any()

        budget = Budget(
            id=generate_id(BUDGET_PREFIX, self._clock),
            name=draft.name.strip(),
            amount=amount,
            start_date=start_date,
            description=draft.description,
            created_by=draft.created_by,
            created_at=self._clock.now(),
        )
        try:
            self._session.add(budget)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("budget_created", extra={
            "budget_id": budget.id,
            "amount": str(budget.amount),
            "actor_id": draft.created_by,
        })
        self._page_cache.mark_stale(BUDGETS_PATH)
        return to_view(budget, ZERO, ZERO)

    def update_budget(self, budget_id: str, **changes) -> BudgetView:
        """Update ``name``, ``amount``, ``start_date`` or ``description``."""
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update budget fields: {sorted(unknown)}")

        errors = FieldErrors("Budget")
        values = dict(changes)
        if "name" in values:
            errors.require_text("name", values["name"], MIN_TEXT_LENGTH)
        if "amount" in values:
            values["amount"] = coerce_amount(values["amount"])
            errors.require_positive("amount", values["amount"])
        if "start_date" in values:
            values["start_date"] = coerce_date(values["start_date"])
            errors.require_date("start_date", values["start_date"])
        errors.raise_if_any()

        try:
            budget = self._load(budget_id)
            for field, value in values.items():
                setattr(budget, field, value)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("budget_updated", extra={
            "budget_id": budget_id,
            "fields": sorted(values),
        })
        self._page_cache.mark_stale(BUDGETS_PATH)
        return self.get_budget(budget_id)

    def delete_budget(self, budget_id: str) -> None:
        try:
            self._load(budget_id)
            expense_count = self._count(Expense, Expense.budget_id, budget_id)
            allocation_count = self._count(
                AdditionalAllocation, AdditionalAllocation.original_budget_id, budget_id
            )
            if expense_count or allocation_count:
                raise BudgetHasDependentsError(budget_id, expense_count, allocation_count)
            self._session.execute(delete(Budget).where(Budget.id == budget_id))
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("budget_deleted", extra={"budget_id": budget_id})
        self._page_cache.mark_stale(BUDGETS_PATH)

    def delete_budget_with_expenses(self, budget_id: str) -> BudgetDeletion:
        """Delete a budget with its expenses, allocations and usage rows in one transaction."""
        try:
            self._load(budget_id)
            usage_deleted = 0
            if inspect(self._session.connection()).has_table(BudgetUsageHistory.__tablename__):
                usage_deleted = self._session.execute(
                    delete(BudgetUsageHistory).where(BudgetUsageHistory.budget_id == budget_id)
                ).rowcount
            # Allocations may point at expenses; unlink before deleting either
            self._session.execute(
                update(Expense)
                .where(Expense.budget_id == budget_id)
                .values(additional_allocation_id=None)
            )
            expenses_deleted = self._session.execute(
                delete(Expense).where(Expense.budget_id == budget_id)
            ).rowcount
            allocations_deleted = self._session.execute(
                delete(AdditionalAllocation).where(
                    AdditionalAllocation.original_budget_id == budget_id
                )
            ).rowcount
            self._session.execute(delete(Budget).where(Budget.id == budget_id))
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        result = BudgetDeletion(
            budget_id=budget_id,
            deleted_expenses=expenses_deleted,
            deleted_allocations=allocations_deleted,
            deleted_usage_records=usage_deleted,
        )
        logger.info("budget_deleted_with_expenses", extra={
            "budget_id": budget_id,
            "deleted_expenses": expenses_deleted,
            "deleted_allocations": allocations_deleted,
            "deleted_usage_records": usage_deleted,
        })
        self._page_cache.mark_stale(BUDGETS_PATH)
        self._page_cache.mark_stale(EXPENSES_PATH)
        return result

    # =========================================================================
    # Queries
    # =========================================================================

    def get_budget(self, budget_id: str) -> BudgetView:
        budget = self._load(budget_id)
        spent = spent_by_budget(self._session, [budget_id]).get(budget_id, ZERO)
        additional = additional_by_budget(self._session, [budget_id]).get(budget_id, ZERO)
        return to_view(budget, spent, additional)

    def list_budgets(self) -> list[BudgetView]:
        """All budgets, newest first."""
        budgets = self._session.scalars(
            select(Budget).order_by(Budget.created_at.desc(), Budget.id.desc())
        ).all()
        spent = spent_by_budget(self._session)
        additional = additional_by_budget(self._session)
        return [
            to_view(b, spent.get(b.id, ZERO), additional.get(b.id, ZERO))
            for b in budgets
        ]

    def get_summary(self) -> BudgetSummary:
        total_budget, budget_count = self._session.execute(
            select(func.coalesce(func.sum(Budget.amount), 0), func.count(Budget.id))
        ).one()
        total_spent = self._session.scalar(
            select(func.coalesce(func.sum(Expense.amount), 0))
        )
        total_additional = self._session.scalar(
            select(func.coalesce(func.sum(AdditionalAllocation.amount), 0))
        )
        total_budget = as_decimal(total_budget)
        total_spent = as_decimal(total_spent)
        total_additional = as_decimal(total_additional)
        return BudgetSummary(
            total_budget=total_budget,
            total_spent=total_spent,
            total_additional=total_additional,
            total_available=total_budget + total_additional - total_spent,
            budget_count=budget_count,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _load(self, budget_id: str) -> Budget:
        budget = self._session.get(Budget, budget_id, populate_existing=True)
        if budget is None:
            raise BudgetNotFoundError(budget_id)
        return budget

    def _count(self, model, column, budget_id: str) -> int:
        return self._session.scalar(
            select(func.count()).select_from(model).where(column == budget_id)
        )
