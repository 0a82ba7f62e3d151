"""Entity identifiers of the form ``<PREFIX>-<year>-<suffix>``."""

from uuid import uuid4

from budget_kernel.domain.clock import Clock, SystemClock

BUDGET_PREFIX = "BDG"
EXPENSE_PREFIX = "EXP"
ALLOCATION_PREFIX = "ADD"


def generate_id(prefix: str, clock: Clock | None = None) -> str:
    """
    Generate an id such as ``EXP-2024-3F9A1C0B``.

    The year comes from the clock; the suffix is random hex, wide enough that
    two operators creating records in the same second do not collide.
    """
    year = (clock or SystemClock()).now().year
    return f"{prefix}-{year}-{uuid4().hex[:8].upper()}"
