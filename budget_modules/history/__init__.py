"""Budget usage history: read side of the optional usage log."""

from budget_modules.history.models import (
    TimeFrame,
    UsageHistory,
    UsagePoint,
    UsageRecord,
    UsageSummary,
)
from budget_modules.history.service import UsageHistoryService

__all__ = [
    "UsageHistoryService",
    "TimeFrame",
    "UsageHistory",
    "UsagePoint",
    "UsageRecord",
    "UsageSummary",
]
