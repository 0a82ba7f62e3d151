"""
Expense Module Service (``budget_modules.expense.service``).

Responsibility
--------------
Records expenses (pengeluaran) against budgets.  An expense larger than the
budget's available amount is still accepted: the shortage is covered by an
automatically approved additional allocation created in the same
transaction.

Architecture position
---------------------
**Modules layer**.  Owns the transaction for the expense write, then runs
the kernel ``RevalidationTrigger`` side channels after the commit.

Invariants enforced
-------------------
* Expense and auto-allocation commit together or not at all.
* Side channels run only after a successful commit and never raise; their
  outcomes are returned in ``ExpenseCreated``.

Failure modes
-------------
* Invalid form input -> ``ValidationError``; nothing written.
* Unknown budget -> ``BudgetNotFoundError``; nothing written.
* Database error on the primary write -> rollback, exception re-raised.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.ids import ALLOCATION_PREFIX, EXPENSE_PREFIX, generate_id
from budget_kernel.exceptions import BudgetNotFoundError, ExpenseNotFoundError
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.models import AdditionalAllocation, Budget, Expense
from budget_kernel.services.revalidation import RevalidationTrigger
from budget_modules._queries import ZERO, additional_by_budget, as_decimal, spent_by_budget
from budget_modules._validation import MIN_TEXT_LENGTH, FieldErrors, coerce_amount, coerce_date
from budget_modules.expense.models import (
    ExpenseCreated,
    ExpenseDraft,
    ExpenseSummary,
    ExpenseView,
)

logger = get_logger("modules.expense.service")

AUTO_ALLOCATION_REASON = "Pengeluaran melebihi anggaran yang tersedia"


def auto_allocation_description(expense_description: str) -> str:
    return f"Alokasi tambahan untuk: {expense_description}"


def to_view(expense: Expense, budget_name: str, allocation: AdditionalAllocation | None = None) -> ExpenseView:
    return ExpenseView(
        id=expense.id,
        budget_id=expense.budget_id,
        budget_name=budget_name,
        description=expense.description,
        amount=expense.amount,
        date=expense.date,
        submitted_by=expense.submitted_by,
        submitted_at=expense.submitted_at,
        notes=expense.notes,
        additional_allocation_id=expense.additional_allocation_id,
        image_url=expense.image_url,
        allocation_amount=allocation.amount if allocation is not None else None,
        allocation_reason=allocation.reason if allocation is not None else None,
    )


class ExpenseService:
    """
    Expense recording and queries.

    Contract
    --------
    * ``create_expense`` returns ``ExpenseCreated``; it raises only for
      input, lookup and primary-write failures.
    * Page staleness is handled by the trigger: a failed
      ``record_budget_impact`` leaves the paths unmarked.
    """

    def __init__(
        self,
        session: Session,
        trigger: RevalidationTrigger,
        clock: Clock | None = None,
    ):
        self._session = session
        self._trigger = trigger
        self._clock = clock or SystemClock()

    def create_expense(self, draft: ExpenseDraft) -> ExpenseCreated:
        amount, expense_date = self._validate(draft)

        with LogContext.bind(budget_id=draft.budget_id, actor_id=draft.submitted_by):
            try:
                budget = self._session.get(Budget, draft.budget_id)
                if budget is None:
                    raise BudgetNotFoundError(draft.budget_id)

                available = self._available(budget)
                now = self._clock.now()
                expense_id = generate_id(EXPENSE_PREFIX, self._clock)
                allocation_id = None

                if amount > available:
                    # Overspent budgets still only grant this expense's own amount
                    shortage = amount - max(available, ZERO)
                    allocation_id = generate_id(ALLOCATION_PREFIX, self._clock)
                    self._session.add(AdditionalAllocation(
                        id=allocation_id,
                        original_budget_id=budget.id,
                        description=auto_allocation_description(draft.description.strip()),
                        reason=AUTO_ALLOCATION_REASON,
                        amount=shortage,
                        request_date=expense_date,
                        requested_by=draft.submitted_by,
                        requested_at=now,
                        approved_by=draft.submitted_by,
                        approved_at=now,
                        related_expense_id=expense_id,
                    ))
                    logger.info("expense_auto_allocation_created", extra={
                        "allocation_id": allocation_id,
                        "shortage": str(shortage),
                        "available": str(available),
                    })

                expense = Expense(
                    id=expense_id,
                    budget_id=budget.id,
                    description=draft.description.strip(),
                    amount=amount,
                    date=expense_date,
                    submitted_by=draft.submitted_by,
                    submitted_at=now,
                    notes=draft.notes or None,
                    additional_allocation_id=allocation_id,
                    image_url=draft.image_url,
                )
                self._session.add(expense)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("expense_created", extra={
                "expense_id": expense_id,
                "amount": str(amount),
                "needs_allocation": allocation_id is not None,
            })

            impact = self._trigger.record_budget_impact(budget.id, amount, approved=True)
            usage = self._trigger.track_usage(budget.id, amount, expense_id)

        return ExpenseCreated(
            expense=to_view(expense, budget.name),
            needs_allocation=allocation_id is not None,
            additional_allocation_id=allocation_id,
            budget_impact=impact,
            usage=usage,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def list_expenses(self) -> list[ExpenseView]:
        """All expenses, most recently submitted first."""
        return self._list(None)

    def list_for_budget(self, budget_id: str) -> list[ExpenseView]:
        return self._list(budget_id)

    def get_expense(self, expense_id: str) -> ExpenseView:
        row = self._session.execute(
            select(Expense, Budget.name)
            .join(Budget, Expense.budget_id == Budget.id)
            .where(Expense.id == expense_id)
        ).one_or_none()
        if row is None:
            raise ExpenseNotFoundError(expense_id)
        expense, budget_name = row
        allocation = None
        if expense.additional_allocation_id:
            allocation = self._session.get(AdditionalAllocation, expense.additional_allocation_id)
        return to_view(expense, budget_name, allocation)

    def get_summary(self) -> ExpenseSummary:
        """Totals split by whether an additional allocation covered the expense."""
        rows = self._session.execute(
            select(
                Expense.additional_allocation_id.is_(None),
                func.coalesce(func.sum(Expense.amount), 0),
                func.count(Expense.id),
            ).group_by(Expense.additional_allocation_id.is_(None))
        ).all()
        approved = with_allocation = ZERO
        count = 0
        for without_allocation, total, n in rows:
            if without_allocation:
                approved += as_decimal(total)
            else:
                with_allocation += as_decimal(total)
            count += n
        return ExpenseSummary(
            total=approved + with_allocation,
            approved=approved,
            with_allocation=with_allocation,
            expense_count=count,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _validate(self, draft: ExpenseDraft):
        errors = FieldErrors("Expense")
        errors.require_text("budget_id", draft.budget_id)
        errors.require_text("description", draft.description, MIN_TEXT_LENGTH)
        amount = coerce_amount(draft.amount)
        errors.require_positive("amount", amount)
        expense_date = coerce_date(draft.date)
        errors.require_date("date", expense_date)
        errors.require_text("submitted_by", draft.submitted_by)
        if not draft.image_url:
            errors.add("image_url", "receipt image is required")
        errors.raise_if_any()
        return amount, expense_date

    def _available(self, budget: Budget) -> Decimal:
        spent = spent_by_budget(self._session, [budget.id]).get(budget.id, ZERO)
        additional = additional_by_budget(self._session, [budget.id]).get(budget.id, ZERO)
        return budget.amount + additional - spent

    def _list(self, budget_id: str | None) -> list[ExpenseView]:
        stmt = (
            select(Expense, Budget.name)
            .join(Budget, Expense.budget_id == Budget.id)
            .order_by(Expense.submitted_at.desc(), Expense.id.desc())
        )
        if budget_id is not None:
            stmt = stmt.where(Expense.budget_id == budget_id)
        return [to_view(expense, name) for expense, name in self._session.execute(stmt)]
