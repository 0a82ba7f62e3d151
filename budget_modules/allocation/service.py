"""
Additional Allocation Service (``budget_modules.allocation.service``).

Responsibility
--------------
CRUD for additional allocations (anggaran tambahan).  Operator-created
allocations are approved by their requester on creation, like the
automatic ones ``ExpenseService`` creates.

Invariants enforced
-------------------
* An allocation's amount never drops below the sum of the expenses linked
  to it.
* Deleting an allocation unlinks its expenses in the same transaction.
* Each mutation commits on success, rolls back on exception, then marks the
  allocation and budget pages stale.
"""

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.ids import ALLOCATION_PREFIX, generate_id
from budget_kernel.exceptions import (
    AllocationBelowSpentError,
    AllocationNotFoundError,
    BudgetNotFoundError,
    ExpenseNotFoundError,
    ValidationError,
)
from budget_kernel.logging_config import get_logger
from budget_kernel.models import AdditionalAllocation, Budget, Expense
from budget_kernel.services.page_cache import ALLOCATIONS_PATH, BUDGETS_PATH, PageCache
from budget_modules._queries import ZERO, as_decimal, spent_by_allocation
from budget_modules._validation import MIN_TEXT_LENGTH, FieldErrors, coerce_amount, coerce_date
from budget_modules.allocation.models import AllocationDraft, AllocationSummary, AllocationView

logger = get_logger("modules.allocation.service")


def to_view(allocation: AdditionalAllocation, budget_name: str, spent) -> AllocationView:
    return AllocationView(
        id=allocation.id,
        original_budget_id=allocation.original_budget_id,
        original_budget_name=budget_name,
        description=allocation.description,
        reason=allocation.reason,
        amount=allocation.amount,
        request_date=allocation.request_date,
        requested_by=allocation.requested_by,
        requested_at=allocation.requested_at,
        spent_amount=spent,
        available_amount=allocation.amount - spent,
        approved_by=allocation.approved_by,
        approved_at=allocation.approved_at,
        related_expense_id=allocation.related_expense_id,
    )


def _validate(errors: FieldErrors, description, reason, amount, request_date) -> None:
    errors.require_text("description", description, MIN_TEXT_LENGTH)
    errors.require_text("reason", reason, MIN_TEXT_LENGTH)
    errors.require_positive("amount", amount)
    errors.require_date("request_date", request_date)


class AllocationService:
    def __init__(
        self,
        session: Session,
        page_cache: PageCache,
        clock: Clock | None = None,
    ):
        self._session = session
        self._page_cache = page_cache
        self._clock = clock or SystemClock()

    def create_allocation(self, draft: AllocationDraft) -> AllocationView:
        """Create an approved allocation, linking ``related_expense_id`` if given."""
        amount = coerce_amount(draft.amount)
        request_date = coerce_date(draft.request_date)
        errors = FieldErrors("AdditionalAllocation")
        errors.require_text("original_budget_id", draft.original_budget_id)
        _validate(errors, draft.description, draft.reason, amount, request_date)
        errors.require_text("requested_by", draft.requested_by)
        errors.raise_if_any()

        try:
            budget = self._session.get(Budget, draft.original_budget_id)
            if budget is None:
                raise BudgetNotFoundError(draft.original_budget_id)

            now = self._clock.now()
            allocation = AdditionalAllocation(
                id=generate_id(ALLOCATION_PREFIX, self._clock),
                original_budget_id=budget.id,
                description=draft.description.strip(),
                reason=draft.reason.strip(),
                amount=amount,
                request_date=request_date,
                requested_by=draft.requested_by,
                requested_at=now,
                approved_by=draft.requested_by,
                approved_at=now,
                related_expense_id=draft.related_expense_id,
            )
            self._session.add(allocation)
            if draft.related_expense_id:
                expense = self._session.get(Expense, draft.related_expense_id)
                if expense is None:
                    raise ExpenseNotFoundError(draft.related_expense_id)
                if expense.budget_id != budget.id:
                    raise ValidationError("AdditionalAllocation", [{
                        "field": "related_expense_id",
                        "message": "expense belongs to another budget",
                    }])
                expense.additional_allocation_id = allocation.id
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("allocation_created", extra={
            "allocation_id": allocation.id,
            "budget_id": budget.id,
            "amount": str(amount),
            "related_expense_id": draft.related_expense_id,
        })
        self._mark_stale()
        return to_view(allocation, budget.name, self._spent(allocation.id))

    def update_allocation(
        self,
        allocation_id: str,
        *,
        description: str,
        reason: str,
        amount,
        request_date,
        original_budget_id: str | None = None,
    ) -> AllocationView:
        """Replace the editable fields; refuses to shrink below the spent amount."""
        new_amount = coerce_amount(amount)
        new_date = coerce_date(request_date)
        errors = FieldErrors("AdditionalAllocation")
        _validate(errors, description, reason, new_amount, new_date)
        errors.raise_if_any()

        try:
            allocation = self._load(allocation_id)
            spent = self._spent(allocation_id)
            if new_amount < spent:
                raise AllocationBelowSpentError(allocation_id, new_amount, spent)
            if original_budget_id and original_budget_id != allocation.original_budget_id:
                if self._session.get(Budget, original_budget_id) is None:
                    raise BudgetNotFoundError(original_budget_id)
                allocation.original_budget_id = original_budget_id
            allocation.description = description.strip()
            allocation.reason = reason.strip()
            allocation.amount = new_amount
            allocation.request_date = new_date
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("allocation_updated", extra={
            "allocation_id": allocation_id,
            "amount": str(new_amount),
            "spent": str(spent),
        })
        self._mark_stale()
        return self.get_allocation(allocation_id)

    def delete_allocation(self, allocation_id: str) -> int:
        """Delete the allocation. Returns how many expenses were unlinked."""
        try:
            self._load(allocation_id)
            unlinked = self._session.execute(
                update(Expense)
                .where(Expense.additional_allocation_id == allocation_id)
                .values(additional_allocation_id=None)
            ).rowcount
            self._session.execute(
                delete(AdditionalAllocation).where(AdditionalAllocation.id == allocation_id)
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("allocation_deleted", extra={
            "allocation_id": allocation_id,
            "unlinked_expenses": unlinked,
        })
        self._mark_stale()
        return unlinked

    def get_allocation(self, allocation_id: str) -> AllocationView:
        row = self._session.execute(
            select(AdditionalAllocation, Budget.name)
            .join(Budget, AdditionalAllocation.original_budget_id == Budget.id)
            .where(AdditionalAllocation.id == allocation_id)
        ).one_or_none()
        if row is None:
            raise AllocationNotFoundError(allocation_id)
        allocation, budget_name = row
        return to_view(allocation, budget_name, self._spent(allocation_id))

    def list_allocations(self, budget_id: str | None = None) -> list[AllocationView]:
        """Allocations, most recently requested first."""
        stmt = (
            select(AdditionalAllocation, Budget.name)
            .join(Budget, AdditionalAllocation.original_budget_id == Budget.id)
            .order_by(AdditionalAllocation.requested_at.desc(), AdditionalAllocation.id.desc())
        )
        if budget_id is not None:
            stmt = stmt.where(AdditionalAllocation.original_budget_id == budget_id)
        rows = self._session.execute(stmt).all()
        spent = spent_by_allocation(self._session, [a.id for a, _ in rows])
        return [to_view(a, name, spent.get(a.id, ZERO)) for a, name in rows]

    def get_summary(self) -> AllocationSummary:
        total, count = self._session.execute(
            select(
                func.coalesce(func.sum(AdditionalAllocation.amount), 0),
                func.count(AdditionalAllocation.id),
            )
        ).one()
        return AllocationSummary(total=as_decimal(total), allocation_count=count)

    def _load(self, allocation_id: str) -> AdditionalAllocation:
        allocation = self._session.get(AdditionalAllocation, allocation_id)
        if allocation is None:
            raise AllocationNotFoundError(allocation_id)
        return allocation

    def _spent(self, allocation_id: str):
        return spent_by_allocation(self._session, [allocation_id]).get(allocation_id, ZERO)

    def _mark_stale(self) -> None:
        self._page_cache.mark_stale(ALLOCATIONS_PATH)
        self._page_cache.mark_stale(BUDGETS_PATH)
