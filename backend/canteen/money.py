"""
Money handling for the ledger.

All balances and amounts are integer cents inside the application. Values only
exist as decimals at the edges (JSON input, option schemas, exports), and are
converted here. Conversion is strict: a value that does not land on a whole
cent (beyond a 1e-4 cent tolerance for float noise) is rejected instead of
being silently rounded.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import PrecisionError, ValidationError

Q2 = Decimal("0.01")
HUNDRED = Decimal("100")
BPS_PER_UNIT = Decimal("10000")

# Max distance from a whole cent, in cents, still accepted as that cent
CENT_TOLERANCE = Decimal("0.0001")

# $9,999,999.99 - keeps amounts well inside integer column limits
MAX_AMOUNT_CENTS = 999_999_999


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, int):
        d = Decimal(value)
    elif isinstance(value, float):
        # str() gives the shortest repr, which drops binary noise like 0.1+0.2
        d = Decimal(str(value))
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            raise ValidationError(f"{field} is required")
        try:
            d = Decimal(s)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not d.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return d


def round2(value: Any) -> Decimal:
    return to_decimal(value).quantize(Q2, rounding=ROUND_HALF_UP)


def to_cents(value: Any, field: str = "amount") -> int:
    """Convert a decimal currency value into integer cents."""
    scaled = to_decimal(value, field) * HUNDRED
    nearest = scaled.to_integral_value(rounding=ROUND_HALF_UP)
    if abs(scaled - nearest) > CENT_TOLERANCE:
        raise PrecisionError(
            f"{field} must be a whole number of cents",
            {"field": field, "value": str(value)},
        )
    cents = int(nearest)
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise ValidationError(
            f"{field} cannot exceed {format_cents(MAX_AMOUNT_CENTS)}",
            {"field": field},
        )
    return cents


def cents_to_decimal(cents: int) -> Decimal:
    return (Decimal(cents) / HUNDRED).quantize(Q2)


def format_cents(cents: int) -> str:
    return str(cents_to_decimal(cents))


def percent_to_bps(value: Any, field: str = "discount_percent") -> int:
    """Percent (0-100, up to two decimals) to integer basis points."""
    d = to_decimal(value, field)
    if d < 0 or d > HUNDRED:
        raise ValidationError(f"{field} must be between 0 and 100", {"field": field})
    scaled = d * HUNDRED
    nearest = scaled.to_integral_value(rounding=ROUND_HALF_UP)
    if abs(scaled - nearest) > CENT_TOLERANCE:
        raise PrecisionError(f"{field} allows at most two decimals", {"field": field})
    return int(nearest)


def bps_to_percent(bps: int | None) -> Decimal | None:
    if bps is None:
        return None
    return (Decimal(bps) / HUNDRED).quantize(Q2)


def percent_of(cents: int, bps: int) -> int:
    """round2(cents * percent / 100), computed in cents."""
    share = Decimal(cents) * Decimal(bps) / BPS_PER_UNIT
    return int(share.to_integral_value(rounding=ROUND_HALF_UP))
