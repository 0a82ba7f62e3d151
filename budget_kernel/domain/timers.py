"""
Timers -- deferred-callback abstraction for debounce and indicator expiry.

Responsibility:
    Gives the notifier's consumers one way to schedule "call this later"
    without binding them to a particular event loop.  ``TimerScheduler`` is
    the port; ``AsyncioTimerScheduler`` runs on a cooperative asyncio loop and
    ``ManualTimerScheduler`` is advanced explicitly in tests, in lock-step with
    a ``DeterministicClock``.

Architecture position:
    Kernel > Domain.  Imported by ``services.debounce`` and
    ``services.observer``.  Never imports services.

Invariants enforced:
    - A cancelled handle never fires.
    - A handle fires at most once.
    - ManualTimerScheduler fires due timers in (deadline, scheduling order)
      order and moves the clock to each deadline before firing it.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from collections.abc import Callable

from budget_kernel.domain.clock import DeterministicClock


class TimerHandle(ABC):
    """A scheduled callback that can be cancelled before it fires."""

    @abstractmethod
    def cancel(self) -> None:
        ...

    @property
    @abstractmethod
    def active(self) -> bool:
        """True while the callback is scheduled and has not fired."""
        ...


class TimerScheduler(ABC):
    """Port for scheduling a callback after a delay."""

    @abstractmethod
    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle:
        ...


# ---------------------------------------------------------------------------
# asyncio
# ---------------------------------------------------------------------------


class _AsyncioTimerHandle(TimerHandle):
    def __init__(self) -> None:
        self._inner: asyncio.TimerHandle | None = None
        self._done = False

    def cancel(self) -> None:
        if self._inner is not None:
            self._inner.cancel()
        self._done = True

    @property
    def active(self) -> bool:
        return not self._done

    def _fire(self, callback: Callable[[], None]) -> None:
        if self._done:
            return
        self._done = True
        callback()


class AsyncioTimerScheduler(TimerScheduler):
    """Schedules callbacks on an asyncio event loop (``loop.call_later``)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _AsyncioTimerHandle()
        handle._inner = self._get_loop().call_later(delay_seconds, handle._fire, callback)
        return handle


# ---------------------------------------------------------------------------
# Manual (deterministic)
# ---------------------------------------------------------------------------


class _ManualTimerHandle(TimerHandle):
    def __init__(self, deadline_ms: int, callback: Callable[[], None]):
        self.deadline_ms = deadline_ms
        self.callback = callback
        self._done = False

    def cancel(self) -> None:
        self._done = True

    @property
    def active(self) -> bool:
        return not self._done


class ManualTimerScheduler(TimerScheduler):
    """
    Deterministic scheduler driven by ``advance_ms``.

    Contract:
        Shares a ``DeterministicClock`` with the code under test.  Timers are
        only fired from ``advance_ms`` / ``run_pending``, on the caller's
        stack, which models the single-threaded UI event loop.
    """

    def __init__(self, clock: DeterministicClock):
        self._clock = clock
        self._queue: list[tuple[int, int, _ManualTimerHandle]] = []
        self._seq = itertools.count()

    @property
    def clock(self) -> DeterministicClock:
        return self._clock

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle:
        deadline = self._clock.now_ms() + round(delay_seconds * 1000)
        handle = _ManualTimerHandle(deadline, callback)
        heapq.heappush(self._queue, (deadline, next(self._seq), handle))
        return handle

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, h in self._queue if h.active)

    def advance_ms(self, milliseconds: int) -> int:
        """Move time forward, firing every timer that falls due. Returns fired count."""
        target = self._clock.now_ms() + milliseconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            deadline, _, handle = heapq.heappop(self._queue)
            if not handle.active:
                continue
            now = self._clock.now_ms()
            if deadline > now:
                self._clock.advance_ms(deadline - now)
            handle.cancel()
            handle.callback()
            fired += 1
        remaining = target - self._clock.now_ms()
        if remaining > 0:
            self._clock.advance_ms(remaining)
        return fired

    def run_pending(self) -> int:
        """Fire everything currently scheduled, however far in the future."""
        fired = 0
        while any(h.active for _, _, h in self._queue):
            latest = max(d for d, _, h in self._queue if h.active)
            fired += self.advance_ms(max(0, latest - self._clock.now_ms()))
        return fired
