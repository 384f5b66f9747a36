"""
Unit tests for spread calculation and best-pair selection.

P0:
- spread sign follows (a - b) / b
- largest absolute spread wins, ties go to the earliest pair
- unknown prices never take part
"""

from decimal import Decimal

import pytest

from core.constants import VenueId
from core.exceptions import InsufficientVenuesError, UnavailablePriceError
from strategy.spread import best_spread_pair, known_prices, spread_pct

U = VenueId.UNISWAP_V3
A = VenueId.AERODROME_SLIPSTREAM
P = VenueId.PANCAKESWAP_V3

Q = Decimal("0.0001")


class TestSpreadPct:
    """spread_pct(a, b)."""

    def test_positive_when_a_above_b(self):
        assert spread_pct(Decimal("90200"), Decimal("90000")).quantize(Q) == Decimal("0.2222")

    def test_negative_when_a_below_b(self):
        assert spread_pct(Decimal("90000"), Decimal("90200")).quantize(Q) == Decimal("-0.2217")

    def test_equal_prices(self):
        assert spread_pct(Decimal("90000"), Decimal("90000")) == 0

    @pytest.mark.parametrize("a, b", [("90000", "90200"), ("1", "2"), ("0.5", "0.49")])
    def test_sign_antisymmetry(self, a, b):
        forward = spread_pct(Decimal(a), Decimal(b))
        backward = spread_pct(Decimal(b), Decimal(a))
        assert forward != 0
        assert (forward > 0) == (backward < 0)

    def test_zero_denominator(self):
        with pytest.raises(UnavailablePriceError):
            spread_pct(Decimal("90000"), Decimal("0"))


class TestBestSpreadPair:
    """best_spread_pair over VenueId order."""

    def test_largest_absolute_spread_wins(self):
        pair = best_spread_pair({
            U: Decimal("90000"),
            A: Decimal("89900"),
            P: Decimal("90200"),
        })
        # A vs P: -300 / 90200 beats U vs P and U vs A
        assert (pair.venue_a, pair.venue_b) == (A, P)
        assert pair.spread_pct.quantize(Q) == Decimal("-0.3326")

    def test_outer_pair_wins(self):
        pair = best_spread_pair({
            U: Decimal("90000"),
            A: Decimal("90100"),
            P: Decimal("90200"),
        })
        assert (pair.venue_a, pair.venue_b) == (U, P)
        assert pair.spread_pct.quantize(Q) == Decimal("-0.2217")

    def test_tie_keeps_first_pair(self):
        pair = best_spread_pair({
            P: Decimal("90000"),
            A: Decimal("90000"),
            U: Decimal("90000"),
        })
        assert (pair.venue_a, pair.venue_b) == (U, A)
        assert pair.spread_pct == 0

    def test_two_venues(self):
        pair = best_spread_pair({P: Decimal("90100"), A: Decimal("90000")})
        assert (pair.venue_a, pair.venue_b) == (A, P)

    def test_unknown_price_excluded(self):
        pair = best_spread_pair({
            U: Decimal("0"),
            A: Decimal("90000"),
            P: Decimal("90300"),
        })
        assert (pair.venue_a, pair.venue_b) == (A, P)

    def test_custom_order(self):
        pair = best_spread_pair(
            {U: Decimal("90000"), P: Decimal("90200")},
            order=[P, U],
        )
        assert (pair.venue_a, pair.venue_b) == (P, U)
        assert pair.spread_pct > 0

    def test_string_venue_keys(self):
        pair = best_spread_pair({"uniswap_v3": Decimal("1"), "pancakeswap_v3": Decimal("2")})
        assert (pair.venue_a, pair.venue_b) == (U, P)

    @pytest.mark.parametrize("prices", [
        {},
        {U: Decimal("90000")},
        {U: Decimal("90000"), A: Decimal("0")},
        {U: Decimal("0"), A: None, P: Decimal("0")},
    ])
    def test_insufficient_venues(self, prices):
        with pytest.raises(InsufficientVenuesError):
            best_spread_pair(prices)


def test_known_prices_filters_unknown():
    assert known_prices({U: Decimal("1"), A: Decimal("0"), P: None}) == {U: Decimal("1")}
