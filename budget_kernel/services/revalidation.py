"""
RevalidationTrigger -- post-commit freshness for budget views.

Responsibility:
    After a financial mutation has committed, touch the affected budget's
    ``updated_at`` and mark the dependent server-rendered paths stale, and
    record the mutation in the optional usage-history table.

Architecture position:
    Kernel > Services.  Called by mutation handlers in ``budget_modules``
    after their own commit.  Talks to the database only through the
    ``Storage`` port and to the web layer only through ``PageCache``.

Invariants enforced:
    - ``budgets.updated_at`` never moves backwards: the UPDATE only matches
      rows whose stored timestamp is NULL or not later than the new one.
    - Both operations return a ``SideEffectResult`` and never raise.
    - ``track_usage`` inserts at most one row per call, and none when the
      history table is not provisioned.

Failure modes:
    - Storage failure in ``record_budget_impact``: logged at ERROR, result
      FAILED, no paths marked stale.  Views may show stale content until the
      next successful revalidation; the primary mutation is unaffected.
    - Storage failure in ``track_usage``: logged at WARNING, result FAILED.
    - History table absent: result SKIPPED (counts as success).
"""

import re
from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Numeric, bindparam, text

from budget_kernel.db.storage import Storage
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.exceptions import SchemaMissingError, StorageError
from budget_kernel.logging_config import get_logger
from budget_kernel.models.budget import Budget
from budget_kernel.models.usage_history import BudgetUsageHistory
from budget_kernel.services.page_cache import BUDGETS_PATH, EXPENSES_PATH, PageCache
from budget_kernel.services.side_effects import SideEffectResult

logger = get_logger("services.revalidation")

RECORD_BUDGET_IMPACT = "record_budget_impact"
TRACK_USAGE = "track_usage"

DEFAULT_STALE_PATHS = (BUDGETS_PATH, EXPENSES_PATH)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_TOUCH_BUDGET = text(
    f"UPDATE {Budget.__tablename__} "
    "SET updated_at = :now, "
    "last_expense_amount = CASE WHEN :approved THEN :amount ELSE last_expense_amount END, "
    "last_expense_date = CASE WHEN :approved THEN :now ELSE last_expense_date END "
    "WHERE id = :budget_id AND (updated_at IS NULL OR updated_at <= :now)"
).bindparams(
    bindparam("now", type_=DateTime(timezone=True)),
    bindparam("amount", type_=Numeric(15, 2)),
    bindparam("approved", type_=Boolean()),
)


def _as_decimal(value: int | float | Decimal) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class RevalidationTrigger:
    """
    Best-effort side channel run after expense writes.

    Contract:
        Receives the storage port, the page cache and a clock via the
        constructor.  Callers must already have committed the primary
        mutation; this class is never part of that transaction.
    """

    def __init__(
        self,
        storage: Storage,
        page_cache: PageCache,
        clock: Clock | None = None,
        stale_paths: Iterable[str] = DEFAULT_STALE_PATHS,
        usage_history_table: str = BudgetUsageHistory.__tablename__,
    ):
        if not _IDENTIFIER.match(usage_history_table):
            raise ValueError(f"Invalid table name: {usage_history_table!r}")
        self._storage = storage
        self._page_cache = page_cache
        self._clock = clock or SystemClock()
        self._stale_paths = tuple(stale_paths)
        self._usage_table = usage_history_table
        self._insert_usage = text(
            f"INSERT INTO {usage_history_table} "
            "(budget_id, expense_id, amount, recorded_at) "
            "VALUES (:budget_id, :expense_id, :amount, :recorded_at)"
        ).bindparams(
            bindparam("amount", type_=Numeric(15, 2)),
            bindparam("recorded_at", type_=DateTime(timezone=True)),
        )

    @property
    def stale_paths(self) -> tuple[str, ...]:
        return self._stale_paths

    def record_budget_impact(
        self,
        budget_id: str,
        expense_amount: int | float | Decimal,
        approved: bool = False,
    ) -> SideEffectResult:
        """
        Touch ``budgets.updated_at`` and mark the budget and expense views stale.

        When ``approved`` is true the expense also becomes the budget's
        ``last_expense_*``.  Returns FAILED (never raises) on storage errors.
        """
        now = self._clock.now_utc()
        amount = _as_decimal(expense_amount)
        params = {
            "budget_id": budget_id,
            "now": now,
            "amount": amount,
            "approved": approved,
        }
        try:
            self._storage.execute(_TOUCH_BUDGET, params)
        except Exception as exc:
            code = exc.code if isinstance(exc, StorageError) else StorageError.code
            logger.error(
                "budget_impact_failed",
                extra={
                    "budget_id": budget_id,
                    "expense_amount": amount,
                    "error_code": code,
                },
                exc_info=True,
            )
            return SideEffectResult.failed(RECORD_BUDGET_IMPACT, code, str(exc))

        for path in self._stale_paths:
            self._page_cache.mark_stale(path)

        logger.info(
            "budget_impact_recorded",
            extra={
                "budget_id": budget_id,
                "expense_amount": amount,
                "approved": approved,
                "stale_paths": list(self._stale_paths),
            },
        )
        return SideEffectResult.applied(RECORD_BUDGET_IMPACT)

    def track_usage(
        self,
        budget_id: str,
        expense_amount: int | float | Decimal,
        expense_id: str,
    ) -> SideEffectResult:
        """
        Insert one usage-history row, or skip when the table is not provisioned.

        Never raises; failures come back as FAILED results.
        """
        amount = _as_decimal(expense_amount)
        try:
            if not self._storage.table_exists(self._usage_table):
                logger.info(
                    "usage_tracking_disabled",
                    extra={"budget_id": budget_id, "table": self._usage_table},
                )
                return SideEffectResult.skipped(
                    TRACK_USAGE,
                    SchemaMissingError.code,
                    f"Table not provisioned: {self._usage_table}",
                )

            self._storage.execute(
                self._insert_usage,
                {
                    "budget_id": budget_id,
                    "expense_id": expense_id,
                    "amount": amount,
                    "recorded_at": self._clock.now_utc(),
                },
            )
        except Exception as exc:
            code = exc.code if isinstance(exc, StorageError) else StorageError.code
            logger.warning(
                "usage_tracking_failed",
                extra={
                    "budget_id": budget_id,
                    "expense_id": expense_id,
                    "error_code": code,
                },
                exc_info=True,
            )
            return SideEffectResult.failed(TRACK_USAGE, code, str(exc))

        logger.info(
            "usage_tracked",
            extra={
                "budget_id": budget_id,
                "expense_id": expense_id,
                "expense_amount": amount,
            },
        )
        return SideEffectResult.applied(TRACK_USAGE)
