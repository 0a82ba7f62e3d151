"""Additional allocations (anggaran tambahan)."""

from budget_modules.allocation.models import (
    AllocationDraft,
    AllocationSummary,
    AllocationView,
)
from budget_modules.allocation.service import AllocationService

__all__ = [
    "AllocationService",
    "AllocationDraft",
    "AllocationView",
    "AllocationSummary",
]
