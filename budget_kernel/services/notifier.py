"""
BudgetUpdateNotifier -- process-local "a budget changed" event bus.

Responsibility:
    Deliver BudgetUpdateEvents from mutation call sites to UI observers in
    the same process.  No persistence, no cross-process delivery.

Architecture position:
    Kernel > Services.  One instance is constructed at application start
    (see ``budget_kernel.runtime``), handed to observers explicitly, and
    closed at shutdown.

Invariants enforced:
    - ``get_latest()`` is the event from the most recent ``emit`` or None.
    - Every registration active when ``emit`` starts, and still active when
      its turn comes, is invoked exactly once, in registration order.
    - A registration removed during an emission is not invoked again, for
      that emission or any later one.
    - One failing subscriber never prevents delivery to the others.

Concurrency:
    Single-threaded by contract (UI event loop).  ``emit`` iterates over a
    snapshot of the registrations, so callbacks may subscribe or unsubscribe
    re-entrantly.  A multi-threaded host must serialize access externally.
"""

from collections.abc import Callable
from decimal import Decimal

from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.events import BudgetUpdateEvent
from budget_kernel.exceptions import NotifierClosedError, SubscriberFailureError
from budget_kernel.logging_config import get_logger

logger = get_logger("services.notifier")

BudgetUpdateCallback = Callable[[BudgetUpdateEvent], None]
RemovalHook = Callable[["Subscription"], None]


class Subscription:
    """
    Handle returned by ``subscribe``.

    Identity is the handle itself: subscribing the same callback twice
    yields two independent handles.  ``on_removed`` runs once when the
    registration goes away, whether through ``unsubscribe()`` or
    ``BudgetUpdateNotifier.close()``.
    """

    def __init__(
        self,
        notifier: "BudgetUpdateNotifier",
        callback: BudgetUpdateCallback,
        on_removed: RemovalHook | None = None,
    ):
        self._notifier = notifier
        self.callback = callback
        self._on_removed = on_removed
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def name(self) -> str:
        return getattr(self.callback, "__qualname__", type(self.callback).__name__)

    def unsubscribe(self) -> None:
        """Remove this registration. Calling it again is a no-op."""
        if not self._active:
            return
        self._active = False
        self._notifier._remove(self)
        if self._on_removed is not None:
            self._notifier._run_removal_hook(self, self._on_removed)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class BudgetUpdateNotifier:
    """
    Event bus for budget updates.

    Contract:
        ``emit`` runs every subscriber synchronously on the caller's stack
        and returns only after all of them ran.  ``subscribe`` replays the
        latest event (if any) to the new callback before returning.

    Non-goals:
        - Does NOT debounce; that is each subscriber's choice
          (see ``services.debounce``).
        - Does NOT persist or replay history beyond the latest event.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._subscriptions: list[Subscription] = []
        self._latest: BudgetUpdateEvent | None = None
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def closed(self) -> bool:
        return self._closed

    def get_latest(self) -> BudgetUpdateEvent | None:
        return self._latest

    def emit(self, budget_id: str, expense_amount: int | float | Decimal) -> None:
        """Announce that ``budget_id`` was reduced by ``expense_amount``."""
        if self._closed:
            raise NotifierClosedError("emit")

        amount = expense_amount if isinstance(expense_amount, Decimal) else Decimal(str(expense_amount))
        event = BudgetUpdateEvent(
            budget_id=budget_id,
            expense_amount=amount,
            timestamp=self._clock.now_ms(),
        )
        self._latest = event

        snapshot = tuple(self._subscriptions)
        logger.debug(
            "budget_update_emitted",
            extra={
                "budget_id": budget_id,
                "expense_amount": amount,
                "timestamp_ms": event.timestamp,
                "subscriber_count": len(snapshot),
            },
        )
        for subscription in snapshot:
            if subscription.active:
                self._deliver(subscription, event)

    def subscribe(
        self,
        callback: BudgetUpdateCallback,
        on_removed: RemovalHook | None = None,
    ) -> Subscription:
        """
        Register ``callback`` and replay the latest event to it.

        ``on_removed(subscription)`` lets the owner release its own
        resources (debounce timers) when ``close()`` drops the registration.
        """
        if self._closed:
            raise NotifierClosedError("subscribe")

        subscription = Subscription(self, callback, on_removed)
        self._subscriptions.append(subscription)
        logger.debug(
            "budget_update_subscribed",
            extra={"subscriber": subscription.name, "subscriber_count": len(self._subscriptions)},
        )

        if self._latest is not None:
            self._deliver(subscription, self._latest)
        return subscription

    def close(self) -> None:
        """Tear down: drop every registration and refuse further use."""
        if self._closed:
            return
        for subscription in tuple(self._subscriptions):
            subscription.unsubscribe()
        self._closed = True
        logger.info("notifier_closed")

    def _remove(self, subscription: Subscription) -> None:
        # Identity comparison: two handles for one callback are distinct
        for index, candidate in enumerate(self._subscriptions):
            if candidate is subscription:
                del self._subscriptions[index]
                break
        logger.debug(
            "budget_update_unsubscribed",
            extra={"subscriber": subscription.name, "subscriber_count": len(self._subscriptions)},
        )

    def _deliver(self, subscription: Subscription, event: BudgetUpdateEvent) -> None:
        try:
            subscription.callback(event)
        except Exception as exc:
            failure = SubscriberFailureError(subscription.name, event.budget_id, exc)
            logger.error(
                "budget_update_subscriber_failed",
                extra={
                    "error_code": failure.code,
                    "subscriber": failure.subscriber,
                    "budget_id": failure.budget_id,
                    "cause_type": failure.cause_type,
                },
                exc_info=True,
            )

    def _run_removal_hook(self, subscription: Subscription, hook: RemovalHook) -> None:
        try:
            hook(subscription)
        except Exception:
            logger.error(
                "budget_update_removal_hook_failed",
                extra={"subscriber": subscription.name},
                exc_info=True,
            )
