"""
ExpenseSubmitter -- the mutation caller for the expense form.

Creates the expense through ``ExpenseService`` and, once it is committed,
announces the budget reduction on the notifier so mounted observers refresh.
Nothing is emitted when the expense was rejected.
"""

from budget_kernel.exceptions import NotifierClosedError
from budget_kernel.logging_config import get_logger
from budget_kernel.services.notifier import BudgetUpdateNotifier
from budget_modules.expense.models import ExpenseCreated, ExpenseDraft
from budget_modules.expense.service import ExpenseService

logger = get_logger("modules.expense.submission")


class ExpenseSubmitter:
    def __init__(self, service: ExpenseService, notifier: BudgetUpdateNotifier):
        self._service = service
        self._notifier = notifier

    def submit(self, draft: ExpenseDraft) -> ExpenseCreated:
        created = self._service.create_expense(draft)
        try:
            self._notifier.emit(created.budget_id, created.expense_amount)
        except NotifierClosedError as exc:
            # The expense is committed; only the live refresh is lost
            logger.warning(
                "expense_notification_dropped",
                extra={
                    "error_code": exc.code,
                    "budget_id": created.budget_id,
                    "expense_id": created.expense.id,
                },
            )
        return created
