"""JSON log output and request context (budget_kernel/logging_config.py)."""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from budget_kernel.exceptions import BudgetHasDependentsError
from budget_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from budget_kernel.services.side_effects import SideEffectStatus


class JsonLog:
    """A configured kernel logger writing into memory."""

    def __init__(self, level=logging.INFO):
        self.stream = StringIO()
        handler = logging.StreamHandler(self.stream)
        handler.setFormatter(StructuredFormatter())
        configure_logging(handler=handler, level=level)

    def records(self) -> list[dict]:
        return [json.loads(line) for line in self.stream.getvalue().splitlines() if line]

    def only(self) -> dict:
        (record,) = self.records()
        return record


@pytest.fixture
def json_log():
    reset_logging()
    LogContext.clear()
    yield JsonLog()
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


class TestRecordShape:
    def test_envelope(self, json_log):
        get_logger("services.notifier").info("budget_update_emitted")

        record = json_log.only()
        assert record["message"] == "budget_update_emitted"
        assert record["level"] == "INFO"
        assert record["logger"] == "budget_kernel.services.notifier"
        assert datetime.fromisoformat(record["ts"]).tzinfo is not None

    def test_extra_keys_become_fields(self, json_log):
        get_logger("services.page_cache").info(
            "paths_marked_stale", extra={"paths": ["/anggaran", "/pengeluaran"], "count": 2}
        )

        record = json_log.only()
        assert record["paths"] == ["/anggaran", "/pengeluaran"]
        assert record["count"] == 2

    def test_money_dates_and_enums(self, json_log):
        moment = datetime(2024, 3, 5, 9, 0, tzinfo=timezone.utc)
        get_logger("modules.expense").info(
            "expense_created",
            extra={
                "amount": Decimal("500000.00"),
                "submitted_at": moment,
                "status": SideEffectStatus.APPLIED,
            },
        )

        record = json_log.only()
        assert record["amount"] == "500000.00"
        assert record["submitted_at"] == "2024-03-05T09:00:00+00:00"
        assert record["status"] == SideEffectStatus.APPLIED.value

    def test_below_level_is_dropped(self, json_log):
        logger = get_logger("db.engine")
        logger.debug("transaction_started")
        logger.warning("transaction_rolled_back")

        assert [r["message"] for r in json_log.records()] == ["transaction_rolled_back"]

    def test_kernel_error_fields(self, json_log):
        try:
            raise BudgetHasDependentsError("B1", 2, 1)
        except BudgetHasDependentsError:
            get_logger("modules.budget").error("budget_delete_refused", exc_info=True)

        record = json_log.only()
        assert record["exc_type"] == "BudgetHasDependentsError"
        assert record["exc_code"] == "BUDGET_HAS_DEPENDENTS"
        assert record["exc_budget_id"] == "B1"
        assert record["exc_expense_count"] == 2
        assert "BudgetHasDependentsError" in record["traceback"]


class TestContextInRecords:
    def test_bound_fields_appear(self, json_log):
        LogContext.set(correlation_id="req-1", budget_id="B1")
        get_logger("modules.expense").info("expense_created")

        record = json_log.only()
        assert record["correlation_id"] == "req-1"
        assert record["budget_id"] == "B1"

    def test_absent_fields_are_omitted(self, json_log):
        get_logger("runtime").info("runtime_started")

        record = json_log.only()
        assert not {"correlation_id", "budget_id", "expense_id", "actor_id"} & set(record)

    def test_explicit_extra_wins_over_context(self, json_log):
        with LogContext.bind(budget_id="B1"):
            get_logger("services.notifier").info("budget_update_emitted", extra={"budget_id": "B2"})

        assert json_log.only()["budget_id"] == "B2"


class TestLogContext:
    @pytest.fixture(autouse=True)
    def _clean(self):
        LogContext.clear()
        yield
        LogContext.clear()

    def test_set_ignores_none(self):
        LogContext.set(correlation_id="x", expense_id="E1")
        LogContext.set(correlation_id=None)

        assert LogContext.get_all() == {"correlation_id": "x", "expense_id": "E1"}

    def test_every_field(self):
        LogContext.set(correlation_id="c", budget_id="b", expense_id="e", actor_id="a")
        assert set(LogContext.get_all()) == {"correlation_id", "budget_id", "expense_id", "actor_id"}

        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_outer_value(self):
        LogContext.set(budget_id="outer")
        with LogContext.bind(budget_id="inner", actor_id="u1"):
            assert LogContext.get_all() == {"budget_id": "inner", "actor_id": "u1"}
        assert LogContext.get_all() == {"budget_id": "outer"}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(expense_id="E9"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(tenant="t1")
        with pytest.raises(TypeError):
            LogContext.bind(tenant="t1")


class TestConfigure:
    def test_second_call_is_ignored(self, json_log):
        configure_logging(handler=logging.NullHandler())

        # Test runners may attach capture handlers of their own
        json_handlers = [
            h for h in logging.getLogger("budget_kernel").handlers
            if isinstance(h.formatter, StructuredFormatter)
        ]
        assert len(json_handlers) == 1
        assert not isinstance(json_handlers[0], logging.NullHandler)
        get_logger("x").info("still_json")
        assert json_log.only()["message"] == "still_json"

    def test_does_not_propagate_to_root(self, json_log):
        assert logging.getLogger("budget_kernel").propagate is False

    def test_reset_detaches_handler(self, json_log):
        reset_logging()
        assert not any(
            isinstance(h.formatter, StructuredFormatter)
            for h in logging.getLogger("budget_kernel").handlers
        )

    def test_child_logger_name(self):
        assert get_logger("modules.history").name == "budget_kernel.modules.history"
