"""
strategy/spread.py - Cross-venue spread calculation.

SPREAD CONTRACT:
  spread_pct(a, b) = (a - b) / b * 100
  Positive: a trades above b. Not symmetric in magnitude.

BEST PAIR CONTRACT:
  Pairs (order[i], order[j]) with i < j over venues with a known price.
  Strictly greatest abs(spread) wins; ties keep the earliest pair.
  Default order is VenueId declaration order.
"""

from decimal import Decimal
from itertools import combinations
from typing import Iterable, Mapping, Optional

from core.constants import PCT_DENOMINATOR, VENUE_ORDER, VenueId
from core.exceptions import InsufficientVenuesError, UnavailablePriceError
from core.models import SpreadPair, coerce_venue


def spread_pct(price_a: Decimal, price_b: Decimal) -> Decimal:
    """
    Percent difference of price_a over price_b.

    Raises UnavailablePriceError when price_b is zero.
    """
    if price_b == 0:
        raise UnavailablePriceError(
            "Cannot compute spread against a zero price",
            details={"price_a": str(price_a), "price_b": str(price_b)},
        )
    return (price_a - price_b) / price_b * PCT_DENOMINATOR


def known_prices(prices: Mapping[VenueId, Optional[Decimal]]) -> dict[VenueId, Decimal]:
    """Drop unknown (None or non-positive) prices."""
    return {
        coerce_venue(venue): price
        for venue, price in prices.items()
        if price is not None and price > 0
    }


def best_spread_pair(
    prices: Mapping[VenueId, Optional[Decimal]],
    order: Optional[Iterable[VenueId]] = None,
) -> SpreadPair:
    """
    Venue pair with the largest absolute spread.

    Args:
        prices: venue -> last price (0 or None = unknown)
        order: enumeration order (default: VenueId declaration order);
               venues missing from it are appended in declaration order

    Returns:
        SpreadPair(venue_a, venue_b, spread_pct(price_a, price_b))

    Raises:
        InsufficientVenuesError: fewer than two known prices
    """
    usable = known_prices(prices)
    if len(usable) < 2:
        raise InsufficientVenuesError(
            f"Need at least 2 venues with a price, have {len(usable)}",
            details={"known": [v.value for v in usable]},
        )

    ordering = [coerce_venue(v) for v in order] if order is not None else list(VENUE_ORDER)
    ordering += [v for v in VENUE_ORDER if v not in ordering]
    ranked = [v for v in ordering if v in usable]

    best: Optional[SpreadPair] = None
    for venue_a, venue_b in combinations(ranked, 2):
        spread = spread_pct(usable[venue_a], usable[venue_b])
        if best is None or abs(spread) > best.abs_spread_pct:
            best = SpreadPair(venue_a=venue_a, venue_b=venue_b, spread_pct=spread)

    return best
