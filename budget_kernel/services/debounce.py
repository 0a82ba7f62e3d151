"""
Debouncer -- per-subscriber trailing-edge debounce.

A burst of events collapses into one downstream action that runs with the
last event, ``delay_ms`` after the last arrival.  Each subscriber owns its
own Debouncer; the notifier itself never debounces.

State machine::

    IDLE --event--> PENDING(deadline, payload)
    PENDING --event--> PENDING(new deadline, new payload)   (timer restarted)
    PENDING --timer--> IDLE                                  (action runs)
    IDLE | PENDING --close--> CLOSED                         (timer cancelled)
    CLOSED --event--> CLOSED                                 (ignored)
"""

from collections.abc import Callable
from enum import Enum
from typing import Generic, TypeVar

from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.timers import TimerHandle, TimerScheduler
from budget_kernel.logging_config import get_logger

logger = get_logger("services.debounce")

DEFAULT_DEBOUNCE_MS = 300

T = TypeVar("T")


class DebounceState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    CLOSED = "closed"


class Debouncer(Generic[T]):
    """
    Trailing-edge debounce around ``action``.

    Usable directly as a notifier callback: ``notifier.subscribe(debouncer)``.
    ``close()`` must be called when the owner unsubscribes so a pending
    action cannot fire after teardown.
    """

    def __init__(
        self,
        action: Callable[[T], None],
        scheduler: TimerScheduler,
        delay_ms: int = DEFAULT_DEBOUNCE_MS,
        clock: Clock | None = None,
    ):
        if delay_ms < 0:
            raise ValueError("delay_ms cannot be negative")
        self._action = action
        self._scheduler = scheduler
        self._delay_ms = delay_ms
        self._clock = clock or SystemClock()
        self._state = DebounceState.IDLE
        self._timer: TimerHandle | None = None
        self._payload: T | None = None
        self._deadline_ms: int | None = None

    @property
    def state(self) -> DebounceState:
        return self._state

    @property
    def deadline_ms(self) -> int | None:
        """Epoch ms at which the pending action fires, or None when not pending."""
        return self._deadline_ms

    @property
    def pending_payload(self) -> T | None:
        return self._payload

    def __call__(self, payload: T) -> None:
        self.push(payload)

    def push(self, payload: T) -> None:
        if self._state is DebounceState.CLOSED:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._payload = payload
        self._deadline_ms = self._clock.now_ms() + self._delay_ms
        self._state = DebounceState.PENDING
        self._timer = self._scheduler.call_later(self._delay_ms / 1000, self._fire)

    def flush(self) -> bool:
        """Run the pending action now. Returns False when nothing was pending."""
        if self._state is not DebounceState.PENDING:
            return False
        if self._timer is not None:
            self._timer.cancel()
        self._fire()
        return True

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._payload = None
        self._deadline_ms = None
        self._state = DebounceState.CLOSED

    def _fire(self) -> None:
        if self._state is not DebounceState.PENDING:
            return
        payload = self._payload
        self._timer = None
        self._payload = None
        self._deadline_ms = None
        self._state = DebounceState.IDLE
        self._action(payload)  # type: ignore[arg-type]
