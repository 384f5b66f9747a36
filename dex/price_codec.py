"""
dex/price_codec.py - sqrtPriceX96 -> quote-per-base price.

PRICE CONTRACT:
- Price is ALWAYS "quote units per 1 base unit" (USDC per 1 cbBTC).
- The pool encodes sqrt(token1_raw / token0_raw) * 2^96.
- Squaring happens on Python ints; only the final division narrows
  to Decimal.
- is_inverted = quote asset is the pool's token0.
"""

import math
from decimal import Decimal, localcontext

from core.constants import Q96
from core.exceptions import InvalidSampleError, ValidationError

# Significant digits kept by the final division
PRICE_PRECISION = 40


def validate_raw_sample(raw_sample: object) -> int:
    """
    Check a raw sqrtPriceX96 sample.

    Raises InvalidSampleError if the sample is not a non-negative int.
    """
    # bool is an int subclass; a True sample is always a bug upstream
    if isinstance(raw_sample, bool) or not isinstance(raw_sample, int):
        raise InvalidSampleError(
            f"Raw sample must be an integer, got {type(raw_sample).__name__}",
            details={"raw_sample": repr(raw_sample)},
        )
    if raw_sample < 0:
        raise InvalidSampleError(
            f"Raw sample must be non-negative, got {raw_sample}",
            details={"raw_sample": str(raw_sample)},
        )
    return raw_sample


def _token_decimals(is_inverted: bool, base_decimals: int, quote_decimals: int) -> tuple[int, int]:
    """(token0_decimals, token1_decimals) for the pool orientation."""
    if is_inverted:
        return quote_decimals, base_decimals
    return base_decimals, quote_decimals


def derive_price(
    raw_sample: int,
    is_inverted: bool,
    base_decimals: int,
    quote_decimals: int,
) -> Decimal:
    """
    Derive the price of 1 base unit in quote units.

    Formula: ratio = S^2 * 10^dec0 / (2^192 * 10^dec1)
    - base is token0: ratio is quote per base, returned as is
    - base is token1: ratio is base per quote, returned inverted

    Decimal scaling follows token0/token1 order, not base/quote order: when
    base is token0 the factor is 10^base / 10^quote.

    A zero sample yields Decimal(0) (price unavailable); callers must not
    spread or simulate on it.

    Example:
        derive_price(sample, False, 8, 6) -> Decimal('90000.00...')
    """
    sample = validate_raw_sample(raw_sample)
    if sample == 0:
        return Decimal("0")

    dec0, dec1 = _token_decimals(is_inverted, base_decimals, quote_decimals)
    numerator = sample * sample * 10**dec0
    denominator = Q96 * Q96 * 10**dec1

    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        ratio = Decimal(numerator) / Decimal(denominator)
        if is_inverted:
            return Decimal(1) / ratio
        return ratio


def sqrt_price_x96_from_price(
    price: Decimal,
    is_inverted: bool,
    base_decimals: int,
    quote_decimals: int,
) -> int:
    """
    Inverse of derive_price(): encode a quote-per-base price as sqrtPriceX96.

    Rounds down, so derive_price() of the result is within one unit of the
    last place of the sample.
    """
    price = Decimal(price)
    if price <= 0:
        raise ValidationError(
            f"Price must be positive, got {price}",
            details={"price": str(price)},
        )

    with localcontext() as ctx:
        ctx.prec = 100
        # raw token1/token0 ratio
        if is_inverted:
            raw_ratio = Decimal(10**base_decimals) / (price * Decimal(10**quote_decimals))
        else:
            raw_ratio = price * Decimal(10**quote_decimals) / Decimal(10**base_decimals)
        squared = int(raw_ratio * Decimal(Q96 * Q96))

    return math.isqrt(squared)
