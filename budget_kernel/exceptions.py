"""
Typed exception hierarchy for the budget kernel.

Every error carries a ``code`` class attribute (machine-readable, stable)
and its context as attributes, so callers catch by type and log structured
data instead of parsing messages.

    BudgetKernelError (base)
    |
    +-- StorageError
    |   +-- StorageUnavailableError
    |
    +-- SchemaMissingError
    +-- SubscriberFailureError
    +-- NotifierClosedError
    +-- ValidationError
    |
    +-- NotFoundError
    |   +-- BudgetNotFoundError
    |   +-- ExpenseNotFoundError
    |   +-- AllocationNotFoundError
    |
    +-- BudgetHasDependentsError
    +-- AllocationBelowSpentError

Category        | Code                   | When Raised
----------------|------------------------|------------------------------------------
Storage         | STORAGE_ERROR          | Statement rejected by the database
                | STORAGE_UNAVAILABLE    | Database cannot be reached
----------------|------------------------|------------------------------------------
Schema          | SCHEMA_MISSING         | Optional table not provisioned
----------------|------------------------|------------------------------------------
Notification    | SUBSCRIBER_FAILURE     | Observer callback raised during fan-out
                | NOTIFIER_CLOSED        | emit/subscribe after shutdown
----------------|------------------------|------------------------------------------
Input           | VALIDATION_ERROR       | Mutation input failed validation
----------------|------------------------|------------------------------------------
Lookup          | BUDGET_NOT_FOUND       | Budget id doesn't exist
                | EXPENSE_NOT_FOUND      | Expense id doesn't exist
                | ALLOCATION_NOT_FOUND   | Allocation id doesn't exist
----------------|------------------------|------------------------------------------
Integrity       | BUDGET_HAS_DEPENDENTS  | Deleting a budget that has expenses or
                |                        | allocations
                | ALLOCATION_BELOW_SPENT | Shrinking an allocation under its usage

Side-channel failures (STORAGE_*, SCHEMA_MISSING on the write path,
SUBSCRIBER_FAILURE) are logged and absorbed; they are never raised to the
caller of a primary mutation.  Their codes still appear in log records and in
``SideEffectResult.error_code``.
"""

from decimal import Decimal


class BudgetKernelError(Exception):
    """Base exception for all budget kernel errors."""

    code: str = "BUDGET_KERNEL_ERROR"


# Storage


class StorageError(BudgetKernelError):
    """A statement failed inside the persistence layer."""

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage operation {operation} failed: {detail}")


class StorageUnavailableError(StorageError):
    """The persistence layer cannot be reached."""

    code: str = "STORAGE_UNAVAILABLE"


class SchemaMissingError(BudgetKernelError):
    """
    An optional table is not provisioned.

    Write-side side channels treat this as a successful no-op; only read
    paths that need the table raise it.
    """

    code: str = "SCHEMA_MISSING"

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Table not provisioned: {table_name}")


# Notification


class SubscriberFailureError(BudgetKernelError):
    """A subscriber callback raised while an event was being delivered."""

    code: str = "SUBSCRIBER_FAILURE"

    def __init__(self, subscriber: str, budget_id: str, cause: BaseException):
        self.subscriber = subscriber
        self.budget_id = budget_id
        self.cause_type = type(cause).__name__
        super().__init__(
            f"Subscriber {subscriber} failed on budget {budget_id}: {cause}"
        )


class NotifierClosedError(BudgetKernelError):
    """The notifier was used after it was torn down."""

    code: str = "NOTIFIER_CLOSED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot {operation}: notifier is closed")


# Input


class ValidationError(BudgetKernelError):
    """
    Mutation input failed validation.

    ``field_errors`` is a list of ``{"field": ..., "message": ...}`` dicts,
    one per failed rule.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(self, entity: str, field_errors: list[dict]):
        self.entity = entity
        self.field_errors = field_errors
        detail = ", ".join(f"{e['field']}: {e['message']}" for e in field_errors)
        super().__init__(f"Validation error for {entity}: {detail}")


# Lookup


class NotFoundError(BudgetKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class BudgetNotFoundError(NotFoundError):
    """Budget with given ID was not found."""

    code: str = "BUDGET_NOT_FOUND"

    def __init__(self, budget_id: str):
        self.budget_id = budget_id
        super().__init__(f"Budget not found: {budget_id}")


class ExpenseNotFoundError(NotFoundError):
    """Expense with given ID was not found."""

    code: str = "EXPENSE_NOT_FOUND"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")


class AllocationNotFoundError(NotFoundError):
    """Additional allocation with given ID was not found."""

    code: str = "ALLOCATION_NOT_FOUND"

    def __init__(self, allocation_id: str):
        self.allocation_id = allocation_id
        super().__init__(f"Additional allocation not found: {allocation_id}")


# Integrity


class BudgetHasDependentsError(BudgetKernelError):
    """Budget still has expenses or additional allocations."""

    code: str = "BUDGET_HAS_DEPENDENTS"

    def __init__(self, budget_id: str, expense_count: int, allocation_count: int):
        self.budget_id = budget_id
        self.expense_count = expense_count
        self.allocation_count = allocation_count
        super().__init__(
            f"Cannot delete budget {budget_id}: {expense_count} expense(s) and "
            f"{allocation_count} additional allocation(s) reference it"
        )


class AllocationBelowSpentError(BudgetKernelError):
    """Allocation amount would drop below what expenses already consumed."""

    code: str = "ALLOCATION_BELOW_SPENT"

    def __init__(self, allocation_id: str, requested: Decimal, spent: Decimal):
        self.allocation_id = allocation_id
        self.requested = requested
        self.spent = spent
        super().__init__(
            f"Cannot reduce allocation {allocation_id} to {requested}: "
            f"{spent} already spent against it"
        )
