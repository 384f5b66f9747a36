# PATH: core/format_money.py
"""
Safe money formatting utilities.

No float money: all values are str or Decimal. This module only formats.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Union

Numeric = Union[str, Decimal, int, None]


def _to_decimal(value: Numeric) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, bool):
        # bool is a subclass of int
        return Decimal(1 if value else 0)
    if isinstance(value, str):
        return Decimal(value.strip() or "0")
    return Decimal(value)


def format_money(value: Numeric, decimals: int = 6) -> str:
    """
    Format a money value with a fixed number of decimal places.

    Uses ROUND_HALF_UP (0.005 -> 0.01 with 2 decimals).
    None, empty strings and unparseable input render as zero.

    Example:
        >>> format_money("123.45")
        '123.450000'
        >>> format_money(None)
        '0.000000'
    """
    try:
        dec_value = _to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        dec_value = Decimal(0)

    if not dec_value.is_finite():
        dec_value = Decimal(0)

    with localcontext() as ctx:
        ctx.prec = 50
        quantize_str = "0." + "0" * decimals if decimals > 0 else "0"
        rounded = dec_value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)

    return f"{rounded:.{decimals}f}"


def format_price(value: Numeric) -> str:
    """Price in quote units, 2 decimals: '90000.12'."""
    return format_money(value, decimals=2)


def format_pct(value: Numeric, decimals: int = 4) -> str:
    """
    Format a percentage value.

    Args:
        value: Percentage value (0.1 = 0.10%)
    """
    return format_money(value, decimals=decimals)


def format_spread(value: Numeric) -> str:
    """Signed spread percent, 3 decimals: '+0.222%' / '-0.111%'."""
    formatted = format_pct(value, decimals=3)
    if not formatted.startswith("-"):
        formatted = "+" + formatted
    return formatted + "%"
