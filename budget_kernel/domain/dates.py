"""Indonesian date display helpers."""

from datetime import date, datetime
from typing import Literal

from budget_kernel.logging_config import get_logger

logger = get_logger("domain.dates")

DateStyle = Literal["short", "medium", "long", "full"]

EMPTY_DATE_LABEL = "Pilih tanggal"
EMPTY_RANGE_LABEL = "Pilih rentang tanggal"

_MONTHS = (
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
)
_MONTHS_SHORT = (
    "Jan", "Feb", "Mar", "Apr", "Mei", "Jun",
    "Jul", "Agu", "Sep", "Okt", "Nov", "Des",
)
_WEEKDAYS = ("Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu")


def _coerce(value: date | datetime | str) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        return None


def format_date(value: date | datetime | str | None, style: DateStyle = "medium") -> str:
    """
    Format a date the way the id-ID locale does.

    Strings that are not ISO dates are returned unchanged; an empty value
    gives the date-picker placeholder.
    """
    if not value:
        return EMPTY_DATE_LABEL

    d = _coerce(value)
    if d is None:
        logger.debug("format_date_unparsed", extra={"value": str(value)})
        return str(value)

    if style == "short":
        return f"{d.day:02d}/{d.month:02d}/{d.year % 100:02d}"
    if style == "medium":
        return f"{d.day} {_MONTHS_SHORT[d.month - 1]} {d.year}"
    if style == "long":
        return f"{d.day} {_MONTHS[d.month - 1]} {d.year}"
    return f"{_WEEKDAYS[d.weekday()]}, {d.day} {_MONTHS[d.month - 1]} {d.year}"


def format_date_range(
    start: date | datetime | str | None,
    end: date | datetime | str | None,
) -> str:
    """Format a range as ``"01/01/24 - 31/01/24"``, or its open-ended forms."""
    if not start and not end:
        return EMPTY_RANGE_LABEL
    if start and end:
        return f"{format_date(start, 'short')} - {format_date(end, 'short')}"
    if start:
        return f"Dari {format_date(start, 'short')}"
    return f"Sampai {format_date(end, 'short')}"


def month_abbreviation(month: int) -> str:
    """``3`` -> ``"Mar"``, ``8`` -> ``"Agu"``."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")
    return _MONTHS_SHORT[month - 1]
