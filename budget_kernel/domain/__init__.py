"""Domain layer - pure values and ports, no I/O."""

from budget_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from budget_kernel.domain.events import BudgetUpdateEvent
from budget_kernel.domain.rupiah import format_rupiah, parse_rupiah
from budget_kernel.domain.timers import (
    AsyncioTimerScheduler,
    ManualTimerScheduler,
    TimerHandle,
    TimerScheduler,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "BudgetUpdateEvent",
    "format_rupiah",
    "parse_rupiah",
    "TimerHandle",
    "TimerScheduler",
    "AsyncioTimerScheduler",
    "ManualTimerScheduler",
]
