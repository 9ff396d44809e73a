"""Lenient numeric parsing for amounts coming out of spreadsheets and forms.

Values like ``"$1,234.50"``, ``" 12 "`` or ``"N/A"`` all show up in the store.
Anything that is not a number after stripping currency noise counts as zero.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

_STRIP_RE = re.compile(r"[$,\s]")

ZERO = Decimal("0")

# Largest accepted magnitude is below 10**16; bigger values are data errors
MAX_ADJUSTED_EXPONENT = 15


def _checked(amount: Decimal) -> tuple[Decimal, bool]:
    if not amount.is_finite() or (amount and amount.adjusted() > MAX_ADJUSTED_EXPONENT):
        return ZERO, False
    return amount, True


def try_parse_amount(value: Any) -> tuple[Decimal, bool]:
    """Parse ``value`` as a Decimal.

    Returns:
        (amount, ok). ``ok`` is False when a non-empty value could not be
        parsed and zero was substituted. Missing and blank values are
        ``(0, True)``. Non-finite values and magnitudes of 10**16 or more
        count as malformed.
    """
    if value is None:
        return ZERO, True
    if isinstance(value, bool):
        # bools are ints in Python; a flag is not an amount
        return ZERO, False
    if isinstance(value, Decimal):
        return _checked(value)
    if isinstance(value, int):
        return _checked(Decimal(value))
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return ZERO, False
        return _checked(Decimal(str(value)))

    cleaned = _STRIP_RE.sub("", str(value))
    if not cleaned:
        return ZERO, True
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return ZERO, False
    return _checked(amount)


def parse_amount(value: Any) -> Decimal:
    """Parse an amount, treating anything unparseable as zero."""
    return try_parse_amount(value)[0]
