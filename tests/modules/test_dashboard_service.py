"""Tests for DashboardService (dashboard cards, chart, activity feed)."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from budget_kernel.services.observer import BudgetObserver
from budget_modules.dashboard import ActivityKind, BudgetRef
from budget_modules.dashboard.service import (
    STATUS_APPROVED,
    STATUS_BUDGET,
    STATUS_REGULAR,
    STATUS_WITH_ALLOCATION,
    growth_percent,
    shift_month,
)
from tests.conftest import TEST_ACTOR


class TestMonthArithmetic:
    def test_shift_across_years(self):
        assert shift_month(2024, 1, -1) == (2023, 12)
        assert shift_month(2023, 12, 1) == (2024, 1)
        assert shift_month(2024, 3, -5) == (2023, 10)

    def test_growth(self):
        assert growth_percent(Decimal("450000"), Decimal("300000")) == Decimal("50.00")
        assert growth_percent(Decimal("100"), Decimal("300")) == Decimal("-66.67")
        assert growth_percent(Decimal("100"), Decimal("0")) == Decimal("0")


class TestSummary:
    def test_empty_database(self, dashboard_service):
        summary = dashboard_service.get_summary()

        assert summary.total_expenses == Decimal("0")
        assert summary.expense_growth == Decimal("0")
        assert summary.budget_count == 0
        assert summary.allocation_count == 0

    def test_month_over_month(self, dashboard_service, expense_service, expense_draft, make_budget):
        budget = make_budget()
        expense_service.create_expense(expense_draft(budget.id, amount=300_000, date=date(2024, 2, 10)))
        expense_service.create_expense(expense_draft(budget.id, amount=450_000, date=date(2024, 3, 5)))
        expense_service.create_expense(expense_draft(budget.id, amount=50_000, date=date(2023, 11, 1)))

        summary = dashboard_service.get_summary()

        assert summary.total_expenses == Decimal("800000")
        assert summary.current_month_total == Decimal("450000")
        assert summary.previous_month_total == Decimal("300000")
        assert summary.expense_growth == Decimal("50.00")
        assert summary.budget_count == 1
        assert summary.allocation_count == 0

    def test_january_compares_with_december(self, dashboard_service, expense_service, expense_draft, make_budget, deterministic_clock):
        deterministic_clock.set_time(datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc))
        budget = make_budget()
        expense_service.create_expense(expense_draft(budget.id, amount=100_000, date=date(2023, 12, 20)))

        summary = dashboard_service.get_summary()

        assert summary.previous_month_total == Decimal("100000")
        assert summary.current_month_total == Decimal("0")
        assert summary.expense_growth == Decimal("-100.00")

    def test_counts_auto_allocations(self, dashboard_service, expense_service, expense_draft, make_budget):
        budget = make_budget(amount=100_000)
        expense_service.create_expense(expense_draft(budget.id, amount=150_000))

        assert dashboard_service.get_summary().allocation_count == 1


class TestRecentTransactions:
    def test_newest_expense_date_first(self, dashboard_service, expense_service, expense_draft, make_budget):
        budget = make_budget()
        for day in (1, 5, 3):
            expense_service.create_expense(expense_draft(budget.id, amount=10_000 * day, date=date(2024, 3, day)))

        recent = dashboard_service.get_recent_transactions()

        assert [t.date.day for t in recent] == [5, 3, 1]
        assert recent[0].amount == Decimal("50000")
        assert len(dashboard_service.get_recent_transactions(limit=2)) == 2

    def test_limit_must_be_positive(self, dashboard_service):
        with pytest.raises(ValueError):
            dashboard_service.get_recent_transactions(limit=0)


class TestMonthlyExpenses:
    def test_six_month_window_oldest_first(self, dashboard_service, expense_service, expense_draft, make_budget):
        budget = make_budget()
        expense_service.create_expense(expense_draft(budget.id, amount=70_000, date=date(2023, 9, 30)))
        expense_service.create_expense(expense_draft(budget.id, amount=120_000, date=date(2023, 12, 1)))
        expense_service.create_expense(expense_draft(budget.id, amount=80_000, date=date(2024, 3, 5)))
        expense_service.create_expense(expense_draft(budget.id, amount=20_000, date=date(2024, 3, 1)))

        chart = dashboard_service.get_monthly_expenses()

        assert [m.label for m in chart] == ["Okt", "Nov", "Des", "Jan", "Feb", "Mar"]
        assert [(m.year, m.month) for m in chart][2:4] == [(2023, 12), (2024, 1)]
        assert [m.amount for m in chart] == [
            Decimal("0"), Decimal("0"), Decimal("120000"),
            Decimal("0"), Decimal("0"), Decimal("100000"),
        ]

    def test_custom_window(self, dashboard_service):
        assert [m.label for m in dashboard_service.get_monthly_expenses(months=1)] == ["Mar"]
        with pytest.raises(ValueError):
            dashboard_service.get_monthly_expenses(months=0)


class TestBudgetsWithExpenses:
    def test_only_budgets_with_expenses_by_name(self, dashboard_service, expense_service, expense_draft, make_budget):
        zeta = make_budget(name="Zeta Proyek")
        alpha = make_budget(name="Alpha Kantor")
        make_budget(name="Kosong Sekali")
        expense_service.create_expense(expense_draft(zeta.id, amount=10_000))
        expense_service.create_expense(expense_draft(zeta.id, amount=20_000))
        expense_service.create_expense(expense_draft(alpha.id, amount=10_000))

        assert dashboard_service.list_budgets_with_expenses() == [
            BudgetRef(alpha.id, "Alpha Kantor"),
            BudgetRef(zeta.id, "Zeta Proyek"),
        ]


class TestActivityFeed:
    def test_all_kinds_newest_first(self, dashboard_service, expense_service, expense_draft, make_budget):
        budget = make_budget(amount=100_000)
        created = expense_service.create_expense(expense_draft(budget.id, amount=150_000))

        feed = dashboard_service.list_activities()

        assert [(a.kind, a.id) for a in feed] == [
            (ActivityKind.EXPENSE, created.expense.id),
            (ActivityKind.ADDITIONAL_ALLOCATION, created.additional_allocation_id),
            (ActivityKind.BUDGET, budget.id),
        ]
        assert [a.status for a in feed] == [STATUS_WITH_ALLOCATION, STATUS_APPROVED, STATUS_BUDGET]
        assert feed[2].date == date(2024, 1, 1)

    def test_filter_by_kind(self, dashboard_service, expense_service, expense_draft, make_budget):
        budget = make_budget()
        expense_service.create_expense(expense_draft(budget.id, amount=10_000))

        expenses = dashboard_service.list_activities("expense")

        assert [a.kind for a in expenses] == [ActivityKind.EXPENSE]
        assert expenses[0].status == STATUS_REGULAR
        assert dashboard_service.list_activities(ActivityKind.ADDITIONAL_ALLOCATION) == []

    def test_unknown_kind(self, dashboard_service):
        with pytest.raises(ValueError):
            dashboard_service.list_activities("journal")


class TestSupervisorOverview:
    def test_operators_and_counts(self, dashboard_service, expense_service, expense_draft, make_budget, deterministic_clock):
        budget = make_budget()
        expense_service.create_expense(expense_draft(budget.id, amount=10_000))
        expense_service.create_expense(expense_draft(budget.id, amount=10_000, submitted_by="kasir@example.com"))

        overview = dashboard_service.get_supervisor_overview()

        assert overview.active_operator_count == 2
        assert overview.activity_count == 3
        assert len(overview.activities) == 3
        assert overview.summary.total_expenses == Decimal("20000")
        assert overview.generated_at == deterministic_clock.now()
        assert {a.operator for a in overview.activities} == {TEST_ACTOR, "kasir@example.com"}


class TestDashboardRefresh:
    def test_dashboard_observer_recomputes_summary(
        self, dashboard_service, submitter, expense_draft, make_budget, notifier, scheduler, deterministic_clock
    ):
        budget = make_budget()
        summaries = []
        observer = BudgetObserver(
            notifier,
            scheduler,
            deterministic_clock,
            on_update=lambda event: summaries.append(dashboard_service.get_summary()),
            notify=lambda notification: None,
        )
        observer.mount()

        submitter.submit(expense_draft(budget.id, amount=250_000))
        scheduler.advance_ms(300)
        observer.unmount()

        assert [s.total_expenses for s in summaries] == [Decimal("250000")]
