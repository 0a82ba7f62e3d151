"""Tests for the per-subscriber Debouncer (budget_kernel/services/debounce.py)."""

import pytest

from budget_kernel.services.debounce import DebounceState, Debouncer


@pytest.fixture
def fired():
    return []


@pytest.fixture
def debouncer(fired, scheduler, deterministic_clock):
    return Debouncer(
        lambda payload: fired.append((payload, deterministic_clock.now_ms())),
        scheduler,
        300,
        deterministic_clock,
    )


class TestDebounceLaw:
    def test_burst_collapses_to_last_event(self, debouncer, fired, scheduler, deterministic_clock):
        start = deterministic_clock.now_ms()
        debouncer.push("E1")
        scheduler.advance_ms(100)
        debouncer.push("E2")

        scheduler.advance_ms(299)
        assert fired == []

        scheduler.advance_ms(1)
        assert fired == [("E2", start + 400)]

    def test_single_event_fires_after_delay(self, debouncer, fired, scheduler, deterministic_clock):
        start = deterministic_clock.now_ms()
        debouncer("E1")
        scheduler.advance_ms(1000)
        assert fired == [("E1", start + 300)]

    def test_separate_bursts_fire_separately(self, debouncer, fired, scheduler):
        debouncer.push("E1")
        scheduler.advance_ms(300)
        debouncer.push("E2")
        scheduler.advance_ms(300)
        assert [p for p, _ in fired] == ["E1", "E2"]


class TestStateMachine:
    def test_states(self, debouncer, scheduler, deterministic_clock):
        assert debouncer.state is DebounceState.IDLE

        debouncer.push("E1")
        assert debouncer.state is DebounceState.PENDING
        assert debouncer.pending_payload == "E1"
        assert debouncer.deadline_ms == deterministic_clock.now_ms() + 300

        scheduler.advance_ms(300)
        assert debouncer.state is DebounceState.IDLE
        assert debouncer.deadline_ms is None

    def test_close_cancels_pending(self, debouncer, fired, scheduler):
        debouncer.push("E1")
        debouncer.close()
        scheduler.advance_ms(1000)
        assert fired == []
        assert debouncer.state is DebounceState.CLOSED

    def test_push_after_close_ignored(self, debouncer, fired, scheduler):
        debouncer.close()
        debouncer.push("E1")
        scheduler.advance_ms(1000)
        assert fired == []
        assert scheduler.pending_count == 0

    def test_flush_runs_pending_now(self, debouncer, fired, scheduler):
        debouncer.push("E1")
        assert debouncer.flush() is True
        assert [p for p, _ in fired] == ["E1"]
        scheduler.advance_ms(1000)
        assert len(fired) == 1

    def test_flush_when_idle(self, debouncer):
        assert debouncer.flush() is False

    def test_negative_delay_rejected(self, scheduler):
        with pytest.raises(ValueError):
            Debouncer(lambda p: None, scheduler, -1)

    def test_action_may_push_again(self, scheduler, deterministic_clock):
        seen = []
        holder = {}

        def action(payload):
            seen.append(payload)
            if payload == "E1":
                holder["d"].push("E2")

        holder["d"] = Debouncer(action, scheduler, 300, deterministic_clock)
        holder["d"].push("E1")
        scheduler.advance_ms(700)
        assert seen == ["E1", "E2"]
