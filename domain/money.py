"""
Domain money helpers (pure).

All monetary amounts are Decimal. Values coming from the database, API
payloads or partially filled records may be missing; those are treated as
zero so that cost and profit calculations stay total over sparse data.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_amount(value: Any) -> Decimal:
    """
    Coerce a stored or user-supplied amount into a Decimal.

    None, empty strings, unparseable and non-finite values (NaN, Infinity)
    become Decimal("0").
    Floats go through str() so 0.1 stays 0.1.
    """

    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, bool):
        return ZERO

    text = str(value).strip()
    if not text:
        return ZERO
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return ZERO
    return amount if amount.is_finite() else ZERO


def to_optional_amount(value: Any) -> Optional[Decimal]:
    """Like to_amount, but keeps None (and blank strings) as None."""

    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return to_amount(value)


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half-up (matches how amounts are stored)."""

    return value.quantize(CENT, rounding=ROUND_HALF_UP)
