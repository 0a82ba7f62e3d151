"""
BudgetObserver -- the consumer side of the notifier.

One observer backs one mounted view (a budget detail panel, the dashboard
summary).  It subscribes through its own Debouncer, refreshes its figures
when an event concerns the budget it shows, raises a notification, and
keeps a transient "recently reduced" indicator.

Lifecycle: ``mount()`` when the view appears, ``unmount()`` when it goes
away.  After ``unmount()`` no callback, debounce action or indicator timer
belonging to the observer can run.  Closing the notifier unmounts every
observer subscribed to it.
"""

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.events import BudgetUpdateEvent
from budget_kernel.domain.rupiah import format_rupiah
from budget_kernel.domain.timers import TimerHandle, TimerScheduler
from budget_kernel.logging_config import get_logger
from budget_kernel.services.debounce import DEFAULT_DEBOUNCE_MS, Debouncer
from budget_kernel.services.notifier import BudgetUpdateNotifier, Subscription

logger = get_logger("services.observer")

DEFAULT_INDICATOR_MS = 3000

NOTIFICATION_TITLE = "Anggaran Diperbarui"


@dataclass(frozen=True)
class Notification:
    """A transient user notification (toast)."""

    title: str
    description: str


@dataclass(frozen=True)
class UpdateIndicator:
    """The "recently reduced" badge for one budget."""

    budget_id: str
    expense_amount: Decimal
    timestamp: int
    expires_at_ms: int

    @property
    def text(self) -> str:
        return f"Dikurangi {format_rupiah(self.expense_amount)} baru-baru ini"


def _log_notification(notification: Notification) -> None:
    logger.info(
        "budget_update_notification",
        extra={"title": notification.title, "description": notification.description},
    )


class BudgetObserver:
    """
    Debounced budget-update consumer for one view.

    ``budget_id=None`` watches every budget (dashboard); otherwise only
    events for that budget refresh the view and show the indicator.
    Notifications are raised for every debounced event, as the toast is
    global to the page.
    """

    def __init__(
        self,
        notifier: BudgetUpdateNotifier,
        scheduler: TimerScheduler,
        clock: Clock | None = None,
        *,
        budget_id: str | None = None,
        on_update: Callable[[BudgetUpdateEvent], None] | None = None,
        notify: Callable[[Notification], None] | None = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        indicator_ms: int = DEFAULT_INDICATOR_MS,
    ):
        self._notifier = notifier
        self._scheduler = scheduler
        self._clock = clock or SystemClock()
        self._budget_id = budget_id
        self._on_update = on_update
        self._notify = notify or _log_notification
        self._debounce_ms = debounce_ms
        self._indicator_ms = indicator_ms

        self._last_update: BudgetUpdateEvent | None = None
        self._subscription: Subscription | None = None
        self._debouncer: Debouncer[BudgetUpdateEvent] | None = None
        self._indicator: UpdateIndicator | None = None
        self._indicator_timer: TimerHandle | None = None
        self._replaying = False

    @property
    def budget_id(self) -> str | None:
        return self._budget_id

    @property
    def last_update(self) -> BudgetUpdateEvent | None:
        return self._last_update

    @property
    def mounted(self) -> bool:
        return self._subscription is not None

    @property
    def indicator(self) -> UpdateIndicator | None:
        return self._indicator

    def watches(self, budget_id: str) -> bool:
        return self._budget_id is None or self._budget_id == budget_id

    def indicator_text(self, budget_id: str) -> str | None:
        """Indicator label for ``budget_id`` while it is visible, else None."""
        if self._indicator is None or self._indicator.budget_id != budget_id:
            return None
        return self._indicator.text

    def mount(self) -> None:
        if self.mounted:
            return
        self._last_update = self._notifier.get_latest()
        self._debouncer = Debouncer(
            self._apply, self._scheduler, self._debounce_ms, self._clock
        )
        # The subscribe-time replay only seeds last_update; it is not news.
        self._replaying = True
        try:
            self._subscription = self._notifier.subscribe(
                self._receive, on_removed=self._detach
            )
        except Exception:
            self._debouncer.close()
            self._debouncer = None
            raise
        finally:
            self._replaying = False
        logger.debug(
            "observer_mounted",
            extra={"watched_budget_id": self._budget_id},
        )

    def unmount(self) -> None:
        if self.mounted:
            self._subscription.unsubscribe()

    def _detach(self, subscription: Subscription) -> None:
        # Runs for unmount() and for notifier.close() alike
        if subscription is not self._subscription:
            return
        self._subscription = None
        if self._debouncer is not None:
            self._debouncer.close()
            self._debouncer = None
        self._hide_indicator()
        logger.debug(
            "observer_unmounted",
            extra={"watched_budget_id": self._budget_id},
        )

    def _receive(self, event: BudgetUpdateEvent) -> None:
        if self._replaying:
            self._last_update = event
            return
        if self._debouncer is not None:
            self._debouncer.push(event)

    def _apply(self, event: BudgetUpdateEvent) -> None:
        if self._subscription is None or not self._subscription.active:
            return
        self._last_update = event
        self._notify(
            Notification(
                title=NOTIFICATION_TITLE,
                description=(
                    "Anggaran telah dikurangi sebesar "
                    f"{format_rupiah(event.expense_amount)}"
                ),
            )
        )

        if not self.watches(event.budget_id):
            # Another budget's event supersedes whatever we were showing
            self._hide_indicator()
            return

        self._show_indicator(event)
        if self._on_update is not None:
            self._on_update(event)

    def _show_indicator(self, event: BudgetUpdateEvent) -> None:
        self._hide_indicator()
        self._indicator = UpdateIndicator(
            budget_id=event.budget_id,
            expense_amount=event.expense_amount,
            timestamp=event.timestamp,
            expires_at_ms=self._clock.now_ms() + self._indicator_ms,
        )
        key = event.key
        self._indicator_timer = self._scheduler.call_later(
            self._indicator_ms / 1000, lambda: self._expire_indicator(key)
        )

    def _expire_indicator(self, key: tuple[str, int]) -> None:
        if self._indicator is not None and (
            self._indicator.budget_id,
            self._indicator.timestamp,
        ) == key:
            self._indicator = None
            self._indicator_timer = None

    def _hide_indicator(self) -> None:
        if self._indicator_timer is not None:
            self._indicator_timer.cancel()
        self._indicator_timer = None
        self._indicator = None
