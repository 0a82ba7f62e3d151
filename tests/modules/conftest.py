"""Fixtures shared by the module service tests."""

from datetime import date
from decimal import Decimal

import pytest

from budget_modules.allocation import AllocationService
from budget_modules.budget import BudgetDraft, BudgetService
from budget_modules.dashboard import DashboardService
from budget_modules.expense import ExpenseDraft, ExpenseService, ExpenseSubmitter
from budget_modules.history import UsageHistoryService
from tests.conftest import TEST_ACTOR


@pytest.fixture
def budget_service(session, page_cache, deterministic_clock):
    return BudgetService(session, page_cache, deterministic_clock)


@pytest.fixture
def expense_service(session, trigger, deterministic_clock):
    return ExpenseService(session, trigger, deterministic_clock)


@pytest.fixture
def allocation_service(session, page_cache, deterministic_clock):
    return AllocationService(session, page_cache, deterministic_clock)


@pytest.fixture
def history_service(session):
    return UsageHistoryService(session)


@pytest.fixture
def dashboard_service(session, deterministic_clock):
    return DashboardService(session, deterministic_clock)


@pytest.fixture
def submitter(expense_service, notifier):
    return ExpenseSubmitter(expense_service, notifier)


@pytest.fixture
def make_budget(budget_service, deterministic_clock):
    """Create a budget; each call advances the clock one second."""

    def _make(amount=2_000_000, name="Operasional Kantor"):
        view = budget_service.create_budget(BudgetDraft(
            name=name,
            amount=amount,
            start_date=date(2024, 1, 1),
            created_by=TEST_ACTOR,
        ))
        deterministic_clock.advance(1)
        return view

    return _make


@pytest.fixture
def expense_draft():
    """Build a valid ExpenseDraft, overriding any field."""

    def _draft(budget_id, amount=Decimal("500000"), **overrides):
        fields = {
            "budget_id": budget_id,
            "description": "Pembelian kertas",
            "amount": amount,
            "date": date(2024, 3, 5),
            "submitted_by": TEST_ACTOR,
            "image_url": "receipts/kertas.jpg",
        }
        fields.update(overrides)
        return ExpenseDraft(**fields)

    return _draft
