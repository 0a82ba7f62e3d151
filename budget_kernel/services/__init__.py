"""Kernel services - notifier, debounce, observer, revalidation."""

from budget_kernel.services.debounce import DebounceState, Debouncer
from budget_kernel.services.notifier import BudgetUpdateNotifier, Subscription
from budget_kernel.services.observer import BudgetObserver, Notification, UpdateIndicator
from budget_kernel.services.page_cache import InMemoryPageCache, PageCache
from budget_kernel.services.revalidation import RevalidationTrigger
from budget_kernel.services.side_effects import SideEffectResult, SideEffectStatus

__all__ = [
    "BudgetUpdateNotifier",
    "Subscription",
    "Debouncer",
    "DebounceState",
    "BudgetObserver",
    "Notification",
    "UpdateIndicator",
    "PageCache",
    "InMemoryPageCache",
    "RevalidationTrigger",
    "SideEffectResult",
    "SideEffectStatus",
]
