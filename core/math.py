# PATH: core/math.py
"""
Mathematical utilities.

All quote amounts are Decimal. Floats are accepted at the edges only and
converted through their repr so 0.1 stays 0.1.
"""

from decimal import Decimal, InvalidOperation

from core.constants import BPS_DENOMINATOR, PCT_DENOMINATOR
from core.exceptions import ValidationError


# =============================================================================
# SAFE CONVERSIONS
# =============================================================================

def to_decimal(value: int | str | float | Decimal) -> Decimal:
    """
    Convert value to Decimal.

    Raises ValidationError for bools, NaN/Infinity, and unparseable input.
    """
    if isinstance(value, bool):
        raise ValidationError(
            "Bool is not a number",
            details={"value": value},
        )

    try:
        if isinstance(value, float):
            result = Decimal(repr(value))
        else:
            result = Decimal(value)
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValidationError(
            f"Cannot convert to Decimal: {value!r}",
            details={"value": repr(value), "type": type(value).__name__, "error": str(e)},
        )

    if not result.is_finite():
        raise ValidationError(
            f"Non-finite value: {value!r}",
            details={"value": repr(value)},
        )
    return result


def to_non_negative_decimal(value: int | str | float | Decimal, name: str) -> Decimal:
    """to_decimal() that also rejects negatives, naming the field."""
    result = to_decimal(value)
    if result < 0:
        raise ValidationError(
            f"{name} must be non-negative, got {result}",
            details={"field": name, "value": str(result)},
        )
    return result


# =============================================================================
# BASIS POINTS / PERCENT
# =============================================================================

def bps_to_decimal(bps: int | Decimal) -> Decimal:
    """
    Convert basis points to decimal multiplier.

    Example: 50 bps -> 0.005
    """
    return Decimal(bps) / BPS_DENOMINATOR


def pct_of(amount: Decimal, pct: Decimal) -> Decimal:
    """amount * pct / 100"""
    return amount * (pct / PCT_DENOMINATOR)


def pct_change(new: Decimal, old: Decimal) -> Decimal | None:
    """
    Percent change from old to new.

    Returns None when old is zero (no reference price yet).
    """
    if old == 0:
        return None
    return (new - old) / old * PCT_DENOMINATOR
