"""
Pytest fixtures for the budget ledger test suite.

Provides:
- Structured logging configured once per session, with per-test capture
- Deterministic clock and manual timer scheduler (always advanced together)
- A fresh SQLite database per test (file under tmp_path)
- Kernel services wired to that database: storage, page cache, notifier,
  revalidation trigger

Environment Variables:
- DATABASE_URL: not read here.  Tests marked ``postgres`` use it directly.
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest
from sqlalchemy.orm import Session, sessionmaker

from budget_kernel.db.engine import build_engine, create_tables
from budget_kernel.db.storage import SqlStorage
from budget_kernel.domain.clock import DeterministicClock
from budget_kernel.domain.timers import ManualTimerScheduler
from budget_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from budget_kernel.services.notifier import BudgetUpdateNotifier
from budget_kernel.services.page_cache import InMemoryPageCache
from budget_kernel.services.revalidation import RevalidationTrigger

TEST_ACTOR = "operator@example.com"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture budget_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, trigger):
            trigger.record_budget_impact("B1", 100)
            logs = captured_logs()
            assert any(r["message"] == "budget_impact_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("budget_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 5, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def scheduler(deterministic_clock) -> ManualTimerScheduler:
    return ManualTimerScheduler(deterministic_clock)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine(tmp_path):
    """A file-backed SQLite database with the full schema."""
    eng = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def engine_without_history(tmp_path):
    """A database provisioned without the optional usage-history table."""
    eng = build_engine(f"sqlite:///{tmp_path / 'ledger_no_history.db'}")
    create_tables(eng, include_usage_history=False)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine) -> Session:
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    sess = factory()
    yield sess
    sess.close()


@pytest.fixture
def storage(engine) -> SqlStorage:
    return SqlStorage(engine)


# =============================================================================
# Kernel services
# =============================================================================


@pytest.fixture
def page_cache() -> InMemoryPageCache:
    return InMemoryPageCache()


@pytest.fixture
def notifier(deterministic_clock) -> BudgetUpdateNotifier:
    bus = BudgetUpdateNotifier(deterministic_clock)
    yield bus
    bus.close()


@pytest.fixture
def trigger(storage, page_cache, deterministic_clock) -> RevalidationTrigger:
    return RevalidationTrigger(storage, page_cache, deterministic_clock)
