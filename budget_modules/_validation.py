"""Shared input coercion and validation for module services."""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from budget_kernel.domain.rupiah import parse_rupiah
from budget_kernel.exceptions import ValidationError

MIN_TEXT_LENGTH = 3


def coerce_amount(value: int | float | Decimal | str | None) -> Decimal | None:
    """
    Read an amount from a form value.

    Strings are treated as displayed Rupiah (``"Rp 1.500.000"``,
    ``"1.500.000"``, ``"1500000"``); numbers pass through as Decimal.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        try:
            d = Decimal(str(value))
        except InvalidOperation:
            return None
        return d if d.is_finite() else None
    if not value.strip():
        return None
    return parse_rupiah(value)


def coerce_date(value: date | datetime | str | None) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        return None


class FieldErrors:
    """Collects per-field validation failures, then raises them together."""

    def __init__(self, entity: str):
        self.entity = entity
        self.errors: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append({"field": field, "message": message})

    def require_text(self, field: str, value: str | None, min_length: int = 1) -> None:
        if value is None or len(value.strip()) < min_length:
            if min_length > 1:
                self.add(field, f"must be at least {min_length} characters")
            else:
                self.add(field, "is required")

    def require_positive(self, field: str, value: Decimal | None) -> None:
        if value is None:
            self.add(field, "must be a number")
        elif value <= 0:
            self.add(field, "must be positive")

    def require_date(self, field: str, value: date | None) -> None:
        if value is None:
            self.add(field, "must be a valid date")

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationError(self.entity, list(self.errors))
