"""
SideEffectResult -- outcome of a best-effort operation.

Best-effort operations (timestamp touch, usage tracking) never raise to the
caller of a primary mutation.  They return this result instead, so each call
site decides explicitly whether to ignore, log or surface the outcome.  The
type is deliberately distinct from the primary results in ``budget_modules``.
"""

from dataclasses import dataclass
from enum import Enum


class SideEffectStatus(str, Enum):
    """What happened to a best-effort operation."""

    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class SideEffectResult:
    """Result of one best-effort operation."""

    operation: str
    status: SideEffectStatus
    error_code: str | None = None
    message: str | None = None

    @property
    def is_success(self) -> bool:
        """APPLIED and SKIPPED both count as success."""
        return self.status in (SideEffectStatus.APPLIED, SideEffectStatus.SKIPPED)

    @classmethod
    def applied(cls, operation: str) -> "SideEffectResult":
        return cls(operation=operation, status=SideEffectStatus.APPLIED)

    @classmethod
    def skipped(cls, operation: str, code: str, message: str) -> "SideEffectResult":
        return cls(
            operation=operation,
            status=SideEffectStatus.SKIPPED,
            error_code=code,
            message=message,
        )

    @classmethod
    def failed(cls, operation: str, code: str, message: str) -> "SideEffectResult":
        return cls(
            operation=operation,
            status=SideEffectStatus.FAILED,
            error_code=code,
            message=message,
        )
