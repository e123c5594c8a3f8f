"""
Normalization of user-entered decimal strings ("1.250,00", "1,250.00", "19.9").

Rules:
- whitespace is ignored;
- when both "." and "," appear, the last one is the decimal separator and the
  other one groups thousands;
- when only one of them appears, it groups thousands if it occurs more than once
  or is followed by exactly three digits; otherwise it is the decimal separator.

Values are quantized to two decimal places and must stay below 10^8, the range
of the NUMERIC(10, 2) columns.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from catalog_service.core.exceptions import InvalidPriceError

TWO_PLACES = Decimal("0.01")
# NUMERIC(10, 2) leaves eight integer digits
UPPER_BOUND = Decimal("100000000")
_ALLOWED = re.compile(r"^[0-9.,]+$")


def _canonical(raw: str) -> str:
    has_dot = "." in raw
    has_comma = "," in raw

    if has_dot and has_comma:
        decimal_sep = "." if raw.rfind(".") > raw.rfind(",") else ","
        group_sep = "," if decimal_sep == "." else "."
        return raw.replace(group_sep, "").replace(decimal_sep, ".")

    if has_dot or has_comma:
        sep = "." if has_dot else ","
        tail = raw.rsplit(sep, 1)[1]
        if raw.count(sep) > 1 or len(tail) == 3:
            return raw.replace(sep, "")
        return raw.replace(sep, ".")

    return raw


def parse_decimal(value: str) -> Decimal:
    """Parse a user-entered number into a two-place Decimal."""
    raw = re.sub(r"\s+", "", str(value))
    if not raw or not _ALLOWED.match(raw):
        raise InvalidPriceError(value)

    try:
        number = Decimal(_canonical(raw))
    except InvalidOperation as e:
        raise InvalidPriceError(value) from e

    if not number.is_finite() or number < 0 or number >= UPPER_BOUND:
        raise InvalidPriceError(value)

    number = number.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    # rounding can still carry up to the bound
    if number >= UPPER_BOUND:
        raise InvalidPriceError(value)
    return number


def parse_optional_decimal(value: Optional[str]) -> Optional[Decimal]:
    if value is None or str(value).strip() == "":
        return None
    return parse_decimal(value)


def format_decimal(value: Optional[Decimal]) -> Optional[str]:
    """Decimals leave the service as strings, never floats."""
    if value is None:
        return None
    return str(Decimal(value).quantize(TWO_PLACES))
