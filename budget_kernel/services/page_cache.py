"""
Page cache -- stale markers for server-rendered views.

The web layer keeps one rendered copy per path; ``mark_stale`` tells it the
copy must be recomputed on the next request.  Marking is idempotent and
unordered.
"""

import threading
from typing import Protocol

from budget_kernel.logging_config import get_logger

logger = get_logger("services.page_cache")

BUDGETS_PATH = "/anggaran"
EXPENSES_PATH = "/pengeluaran"
ALLOCATIONS_PATH = "/anggaran-tambahan"


class PageCache(Protocol):
    """Cache-invalidation port."""

    def mark_stale(self, path: str) -> None:
        ...


class InMemoryPageCache:
    """
    Process-local ``PageCache``.

    Shared by request threads, so access is guarded by a lock.
    """

    def __init__(self) -> None:
        self._stale: set[str] = set()
        self._marks = 0
        self._lock = threading.Lock()

    def mark_stale(self, path: str) -> None:
        with self._lock:
            self._stale.add(path)
            self._marks += 1
        logger.debug("page_marked_stale", extra={"path": path})

    def is_stale(self, path: str) -> bool:
        with self._lock:
            return path in self._stale

    def consume_stale(self) -> frozenset[str]:
        """Return and clear the stale set, as the renderer does on refresh."""
        with self._lock:
            stale = frozenset(self._stale)
            self._stale.clear()
        return stale

    @property
    def mark_count(self) -> int:
        """Total ``mark_stale`` calls, including repeats."""
        with self._lock:
            return self._marks
