"""Usage-history DTOs (``budget_modules.history.models``)."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class TimeFrame(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class UsageRecord:
    id: int
    budget_id: str
    budget_name: str
    expense_id: str
    expense_description: str | None
    amount: Decimal
    recorded_at: datetime


@dataclass(frozen=True)
class UsagePoint:
    """One chart bucket: ``period`` is ``2024-03-05``, ``2024-W10`` or ``2024-03``."""

    period: str
    amount: Decimal
    cumulative_amount: Decimal


@dataclass(frozen=True)
class UsageSummary:
    total_records: int
    total_amount: Decimal
    average_amount: Decimal
    max_amount: Decimal
    min_amount: Decimal
    first_recorded_at: datetime | None
    last_recorded_at: datetime | None


@dataclass(frozen=True)
class UsageHistory:
    budget_id: str
    budget_name: str
    time_frame: TimeFrame
    records: tuple[UsageRecord, ...]
    chart: tuple[UsagePoint, ...]
    summary: UsageSummary
