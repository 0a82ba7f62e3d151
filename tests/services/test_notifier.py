"""
Tests for BudgetUpdateNotifier (budget_kernel/services/notifier.py).

Validates:
- exactly-once, in-order delivery to registrations active at emit time
- unsubscribe (including from inside a callback) stops delivery
- get_latest tracks the last emission
- subscribe replays the latest event
- one failing subscriber does not stop the others
- use after close raises NotifierClosedError
"""

from decimal import Decimal

import pytest

from budget_kernel.domain.events import BudgetUpdateEvent
from budget_kernel.exceptions import NotifierClosedError


class TestDelivery:
    def test_every_subscriber_called_once_in_order(self, notifier):
        calls = []
        for name in ("s1", "s2", "s3"):
            notifier.subscribe(lambda e, name=name: calls.append((name, e.budget_id)))

        notifier.emit("B1", 500000)

        assert calls == [("s1", "B1"), ("s2", "B1"), ("s3", "B1")]

    def test_event_fields(self, notifier, deterministic_clock):
        received = []
        notifier.subscribe(received.append)

        notifier.emit("B1", 500000)

        (event,) = received
        assert event == BudgetUpdateEvent("B1", Decimal("500000"), deterministic_clock.now_ms())

    def test_same_event_object_shared(self, notifier):
        first, second = [], []
        notifier.subscribe(first.append)
        notifier.subscribe(second.append)
        notifier.emit("B1", 1)
        assert first[0] is second[0]

    def test_float_amount_converted_through_str(self, notifier):
        notifier.emit("B1", 0.1)
        assert notifier.get_latest().expense_amount == Decimal("0.1")

    def test_same_callback_twice_is_two_registrations(self, notifier):
        calls = []
        notifier.subscribe(calls.append)
        notifier.subscribe(calls.append)
        notifier.emit("B1", 1)
        assert len(calls) == 2

    def test_no_subscribers_is_fine(self, notifier):
        notifier.emit("B1", 1)
        assert notifier.get_latest().budget_id == "B1"


class TestUnsubscribe:
    def test_unsubscribed_callback_not_called(self, notifier):
        calls = []
        sub = notifier.subscribe(calls.append)
        sub.unsubscribe()
        notifier.emit("B1", 1)
        assert calls == []
        assert notifier.subscriber_count == 0

    def test_unsubscribe_is_idempotent(self, notifier):
        sub = notifier.subscribe(lambda e: None)
        other = notifier.subscribe(lambda e: None)
        sub.unsubscribe()
        sub.unsubscribe()
        assert notifier.subscriber_count == 1
        assert other.active

    def test_self_unsubscribe_during_callback(self, notifier):
        calls = []
        holder = {}

        def once(event):
            calls.append(event.budget_id)
            holder["sub"].unsubscribe()

        holder["sub"] = notifier.subscribe(once)
        notifier.emit("B1", 1)
        notifier.emit("B2", 1)

        assert calls == ["B1"]

    def test_later_subscriber_removed_mid_emission_is_skipped(self, notifier):
        calls = []
        holder = {}

        def remover(event):
            calls.append("remover")
            holder["victim"].unsubscribe()

        notifier.subscribe(remover)
        holder["victim"] = notifier.subscribe(lambda e: calls.append("victim"))
        notifier.emit("B1", 1)

        assert calls == ["remover"]

    def test_subscriber_added_mid_emission_gets_replay_only(self, notifier):
        late_calls = []

        def adder(event):
            notifier.subscribe(late_calls.append)

        adder_sub = notifier.subscribe(adder)
        notifier.emit("B1", 1)
        adder_sub.unsubscribe()

        # Replayed once on subscribe, not delivered again by the same emission
        assert [e.budget_id for e in late_calls] == ["B1"]

    def test_context_manager_unsubscribes(self, notifier):
        calls = []
        with notifier.subscribe(calls.append):
            notifier.emit("B1", 1)
        notifier.emit("B2", 1)
        assert [e.budget_id for e in calls] == ["B1"]


class TestLatest:
    def test_none_before_first_emit(self, notifier):
        assert notifier.get_latest() is None

    def test_tracks_last_emit(self, notifier, deterministic_clock):
        notifier.emit("B1", 100)
        deterministic_clock.advance_ms(5)
        notifier.emit("B2", 200)
        latest = notifier.get_latest()
        assert (latest.budget_id, latest.expense_amount) == ("B2", Decimal("200"))

    def test_subscribe_replays_latest(self, notifier):
        notifier.emit("B1", 500000)
        received = []
        notifier.subscribe(received.append)
        assert received == [notifier.get_latest()]

    def test_subscribe_without_history_replays_nothing(self, notifier):
        received = []
        notifier.subscribe(received.append)
        assert received == []


class TestFailureIsolation:
    def test_failing_subscriber_does_not_block_others(self, notifier, captured_logs):
        calls = []

        def broken(event):
            raise RuntimeError("render failed")

        notifier.subscribe(calls.append)
        notifier.subscribe(broken)
        notifier.subscribe(calls.append)

        notifier.emit("B1", 1)

        assert len(calls) == 2
        failures = [r for r in captured_logs() if r["message"] == "budget_update_subscriber_failed"]
        assert len(failures) == 1
        assert failures[0]["error_code"] == "SUBSCRIBER_FAILURE"
        assert failures[0]["cause_type"] == "RuntimeError"
        assert failures[0]["budget_id"] == "B1"

    def test_failing_replay_does_not_fail_subscribe(self, notifier):
        notifier.emit("B1", 1)

        def broken(event):
            raise ValueError("bad")

        sub = notifier.subscribe(broken)
        assert sub.active


class TestClose:
    def test_close_drops_registrations(self, notifier):
        sub = notifier.subscribe(lambda e: None)
        notifier.close()
        assert notifier.closed
        assert not sub.active
        assert notifier.subscriber_count == 0

    def test_emit_after_close_raises(self, notifier):
        notifier.close()
        with pytest.raises(NotifierClosedError) as exc_info:
            notifier.emit("B1", 1)
        assert exc_info.value.operation == "emit"

    def test_subscribe_after_close_raises(self, notifier):
        notifier.close()
        with pytest.raises(NotifierClosedError):
            notifier.subscribe(lambda e: None)

    def test_close_is_idempotent(self, notifier):
        notifier.close()
        notifier.close()
        assert notifier.closed


class TestRemovalHook:
    def test_runs_once_on_unsubscribe(self, notifier):
        removed = []
        sub = notifier.subscribe(lambda e: None, on_removed=removed.append)

        sub.unsubscribe()
        sub.unsubscribe()

        assert removed == [sub]

    def test_runs_for_every_registration_on_close(self, notifier):
        removed = []
        first = notifier.subscribe(lambda e: None, on_removed=removed.append)
        second = notifier.subscribe(lambda e: None, on_removed=removed.append)

        notifier.close()

        assert removed == [first, second]

    def test_failing_hook_does_not_stop_close(self, notifier, captured_logs):
        def broken(subscription):
            raise RuntimeError("hook exploded")

        removed = []
        notifier.subscribe(lambda e: None, on_removed=broken)
        notifier.subscribe(lambda e: None, on_removed=removed.append)

        notifier.close()

        assert notifier.closed
        assert len(removed) == 1
        assert any(r["message"] == "budget_update_removal_hook_failed" for r in captured_logs())
