"""
strategy/simulator.py - Two-leg arbitrage simulation.

SIMULATION CONTRACT:
====================
Nothing is executed. Trades fill entirely at the quoted price.

Per direction (buy on X, sell on Y), in this order:
  1. notional       = budget * (budget_pct / 100)
  2. size_base      = notional / buy_price
  3. spent          = size_base * buy_price + buy fee
  4. received       = size_base * sell_price - sell fee
  5. total_gas      = gas(X) + gas(Y)
  6. net_profit     = (received - total_gas) - spent
  7. net_profit_pct = net_profit / spent * 100
  8. is_profitable  = net_profit > 0

simulate() evaluates "buy on venue_a, sell on venue_b" first, then the
mirror, and returns the higher net_profit. Ties keep the first direction.
====================
"""

from decimal import Decimal

from core.constants import PCT_DENOMINATOR, VenueId
from core.exceptions import UnavailablePriceError, ValidationError
from core.logging import get_logger
from core.math import pct_of, to_decimal
from core.models import (
    ArbitrageResult,
    LegBreakdown,
    TradeBreakdown,
    coerce_venue,
)
from strategy.costs import CostModelRegistry, leg_fee

logger = get_logger(__name__)


class ArbitrageSimulator:
    """
    Fee- and gas-aware two-direction arbitrage simulator.

    Pure: never touches the budget ledger.
    """

    def __init__(self, registry: CostModelRegistry):
        self.registry = registry

    def evaluate_direction(
        self,
        buy_venue: VenueId | str,
        buy_price: Decimal,
        sell_venue: VenueId | str,
        sell_price: Decimal,
        current_budget: Decimal,
        budget_pct: Decimal,
    ) -> ArbitrageResult:
        """
        Simulate buying on buy_venue and selling on sell_venue.

        Raises:
            UnknownVenueError: venue without a cost model
            UnavailablePriceError: non-positive price
            ValidationError: non-positive trade notional
        """
        buy_venue = coerce_venue(buy_venue)
        sell_venue = coerce_venue(sell_venue)
        buy_model = self.registry.get(buy_venue)
        sell_model = self.registry.get(sell_venue)

        buy_price = to_decimal(buy_price)
        sell_price = to_decimal(sell_price)
        for venue, price in ((buy_venue, buy_price), (sell_venue, sell_price)):
            if price <= 0:
                raise UnavailablePriceError(
                    f"No usable price for {venue.value}",
                    details={"venue": venue.value, "price": str(price)},
                )

        budget = to_decimal(current_budget)
        pct = to_decimal(budget_pct)
        notional = pct_of(budget, pct)
        if notional <= 0:
            raise ValidationError(
                f"Trade notional must be positive, got {notional}",
                details={"budget": str(budget), "budget_pct": str(pct)},
            )

        size_base = notional / buy_price

        spent_before_fee = size_base * buy_price
        buy_fee = leg_fee(buy_model, spent_before_fee)
        spent_after_fee = spent_before_fee + buy_fee

        received_before_fee = size_base * sell_price
        sell_fee = leg_fee(sell_model, received_before_fee)
        received_after_fee = received_before_fee - sell_fee

        total_gas = buy_model.gas_fee_quote + sell_model.gas_fee_quote
        net_profit = (received_after_fee - total_gas) - spent_after_fee
        net_profit_pct = net_profit / spent_after_fee * PCT_DENOMINATOR

        breakdown = TradeBreakdown(
            budget_quote=budget,
            budget_pct=pct,
            trade_notional_quote=notional,
            trade_size_base=size_base,
            buy=LegBreakdown(
                venue=buy_venue,
                price=buy_price,
                amount_before_fee=spent_before_fee,
                fee=buy_fee,
                amount_after_fee=spent_after_fee,
                gas_fee=buy_model.gas_fee_quote,
            ),
            sell=LegBreakdown(
                venue=sell_venue,
                price=sell_price,
                amount_before_fee=received_before_fee,
                fee=sell_fee,
                amount_after_fee=received_after_fee,
                gas_fee=sell_model.gas_fee_quote,
            ),
            total_gas_quote=total_gas,
        )

        return ArbitrageResult(
            is_profitable=net_profit > 0,
            net_profit_quote=net_profit,
            net_profit_pct=net_profit_pct,
            buy_venue=buy_venue,
            sell_venue=sell_venue,
            breakdown=breakdown,
        )

    def simulate(
        self,
        venue_a: VenueId | str,
        price_a: Decimal,
        venue_b: VenueId | str,
        price_b: Decimal,
        current_budget: Decimal,
        budget_pct: Decimal,
    ) -> ArbitrageResult:
        """
        Best of both directions between venue_a and venue_b.

        Both cost models are resolved before any arithmetic, so an unknown
        venue fails before anything is computed.
        """
        self.registry.get(venue_a)
        self.registry.get(venue_b)

        a_to_b = self.evaluate_direction(
            venue_a, price_a, venue_b, price_b, current_budget, budget_pct
        )
        b_to_a = self.evaluate_direction(
            venue_b, price_b, venue_a, price_a, current_budget, budget_pct
        )

        best = b_to_a if b_to_a.net_profit_quote > a_to_b.net_profit_quote else a_to_b

        logger.debug(
            "Simulated arbitrage",
            extra={"context": {
                "buy": best.buy_venue.value,
                "sell": best.sell_venue.value,
                "net_profit": str(best.net_profit_quote),
                "other_net_profit": str(
                    (a_to_b if best is b_to_a else b_to_a).net_profit_quote
                ),
            }}
        )
        return best
