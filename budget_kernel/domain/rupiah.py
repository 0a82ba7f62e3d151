"""
Indonesian Rupiah formatting and parsing.

Display format matches the ``id-ID`` locale for IDR with zero fraction
digits: ``"Rp 1.234.567"``, negatives as ``"-Rp 1.234.567"``.  ``.`` groups
thousands and ``,`` is the decimal separator on input.

All arithmetic is Decimal; floats are accepted on input only and converted
through ``str`` so that ``0.1`` stays ``0.1``.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CURRENCY_SYMBOL = "Rp"
GROUP_SEPARATOR = "."
DECIMAL_SEPARATOR = ","

_FORMAT_INPUT_STRIP = re.compile(r"[^\d.-]")
_PARSE_INPUT_STRIP = re.compile(r"[^\d,-]")
_LEADING_NUMBER = re.compile(r"^-?\d+(?:\.\d+)?")


def _to_decimal(value: int | float | Decimal | str | None) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        d = Decimal(str(value))
        return d if d.is_finite() else None
    # Strings: keep digits, dots and minus, then read the leading number
    match = _LEADING_NUMBER.match(_FORMAT_INPUT_STRIP.sub("", value))
    if match is None:
        return None
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return None


def _group(digits: str) -> str:
    head = len(digits) % 3 or 3
    parts = [digits[:head]]
    parts.extend(digits[i:i + 3] for i in range(head, len(digits), 3))
    return GROUP_SEPARATOR.join(parts)


def format_rupiah(value: int | float | Decimal | str | None) -> str:
    """
    Format an amount for display, e.g. ``format_rupiah(1500000) == "Rp 1.500.000"``.

    Fractions are rounded half away from zero.  Input that is not a number
    (including NaN and unparseable strings) renders as ``"Rp 0"``.
    """
    amount = _to_decimal(value)
    if amount is None:
        return f"{CURRENCY_SYMBOL} 0"

    whole = amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if whole < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL} {_group(str(abs(whole)))}"


def parse_rupiah(text: str | None) -> Decimal:
    """
    Parse a displayed amount back to a Decimal.

    Everything except digits, ``,`` and ``-`` is dropped (so ``.`` grouping
    and the ``Rp`` symbol disappear) and ``,`` becomes the decimal point.
    Empty or unparseable input yields ``Decimal(0)``.
    """
    if not text:
        return Decimal(0)
    cleaned = _PARSE_INPUT_STRIP.sub("", text).replace(DECIMAL_SEPARATOR, ".")
    match = _LEADING_NUMBER.match(cleaned)
    if match is None:
        return Decimal(0)
    return Decimal(match.group(0))
