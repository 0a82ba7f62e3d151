"""
BudgetUpdateEvent -- the value delivered by the mutation notifier.

Immutable, never persisted.  Created exactly once per emission by
``BudgetUpdateNotifier.emit`` and shared (not copied) with every subscriber;
immutability makes sharing safe.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class BudgetUpdateEvent:
    """A budget changed by ``expense_amount`` at ``timestamp`` (epoch ms)."""

    budget_id: str
    expense_amount: Decimal
    timestamp: int

    @property
    def key(self) -> tuple[str, int]:
        """Identity used by indicators: which budget, which emission time."""
        return (self.budget_id, self.timestamp)
