"""
strategy/engine.py - Price update -> spread -> simulation -> compounding.

ENGINE CONTRACT:
================
MonitorEngine is the explicit context object owning all mutable state:
- VenuePriceState per venue (last price, token orientation)
- BudgetLedger

on_venue_update() runs one full cycle under a single lock:
  1. derive price from the raw sample      (InvalidSampleError -> dropped)
  2. zero price                            (UnavailablePriceError -> dropped)
  3. |new - last| <= threshold             -> price_changed=False, stop
  4. store price, pick best spread pair    (< 2 known -> skip_reason)
  5. simulate with ledger.snapshot()
  6. compound ledger if profitable

A failing cycle leaves every venue price and the budget as they were.
================
"""

import threading
from decimal import Decimal
from typing import Iterable, Optional, Union

from core.constants import VENUE_ORDER, SkipReason, VenueId
from core.exceptions import (
    ConfigError,
    InsufficientVenuesError,
    UnavailablePriceError,
    UnknownVenueError,
)
from core.logging import get_logger
from core.math import pct_change
from core.models import (
    AssetMetadata,
    SpreadPair,
    UpdateOutcome,
    VenuePriceState,
    coerce_venue,
)
from dex.price_codec import derive_price
from strategy.config import MonitorConfig
from strategy.costs import CostModelRegistry
from strategy.ledger import BudgetLedger
from strategy.simulator import ArbitrageSimulator
from strategy.spread import best_spread_pair

logger = get_logger(__name__)


def detect_inversion(quote: AssetMetadata, base: AssetMetadata, token0: str, token1: str) -> bool:
    """
    True when the quote asset is the pool's token0.

    Raises ConfigError if the pool does not hold exactly base and quote.
    """
    if quote.same_address(token0) and base.same_address(token1):
        return True
    if base.same_address(token0) and quote.same_address(token1):
        return False
    raise ConfigError(
        f"Pool tokens do not match {base.symbol}/{quote.symbol}",
        details={
            "token0": token0,
            "token1": token1,
            "base": base.address,
            "quote": quote.address,
        },
    )


class MonitorEngine:
    """
    Core of the monitor.

    Usage:
        engine = MonitorEngine(base, quote, config, registry)
        engine.initialize_venue(VenueId.UNISWAP_V3, token0, token1, sqrt_price_x96)
        outcome = engine.on_venue_update(VenueId.UNISWAP_V3, sqrt_price_x96)
    """

    def __init__(
        self,
        base: AssetMetadata,
        quote: AssetMetadata,
        config: MonitorConfig,
        registry: CostModelRegistry,
        venues: Optional[Iterable[Union[VenueId, str]]] = None,
    ):
        self.base = base
        self.quote = quote
        self.config = config.validate()
        self.registry = registry

        configured = [coerce_venue(v) for v in venues] if venues is not None else registry.venues
        if len(set(configured)) != len(configured):
            raise ConfigError(
                "Duplicate venue in engine configuration",
                details={"venues": [v.value for v in configured]},
            )
        # Spread pairs and tie-breaks follow VenueId declaration order
        self.venues: list[VenueId] = sorted(configured, key=VENUE_ORDER.index)
        # Fatal before monitoring: every venue must have a cost model
        registry.require(self.venues)

        self.simulator = ArbitrageSimulator(registry)
        self.ledger = BudgetLedger(config.initial_budget_quote)

        self._states: dict[VenueId, VenuePriceState] = {}
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    def initialize_venue(
        self,
        venue: Union[VenueId, str],
        token0: str,
        token1: str,
        raw_initial_sample: int,
    ) -> VenuePriceState:
        """
        Detect token orientation and seed the venue's price.

        Called once per venue before monitoring. A zero initial sample
        leaves the price unknown until the first update.
        """
        venue = self._require_venue(venue)
        is_inverted = detect_inversion(self.quote, self.base, token0, token1)
        price = derive_price(raw_initial_sample, is_inverted, self.base.decimals, self.quote.decimals)

        with self._lock:
            if venue in self._states:
                raise ConfigError(
                    f"Venue {venue.value} is already initialized",
                    details={"venue": venue.value},
                )
            state = VenuePriceState(venue=venue, is_inverted=is_inverted, last_price=price)
            self._states[venue] = state

        logger.info(
            f"Venue initialized: {venue.value}",
            extra={"context": {
                "venue": venue.value,
                "is_inverted": is_inverted,
                f"{self.base.symbol}_is": "token1" if is_inverted else "token0",
                "price": str(price),
            }}
        )
        return state

    # -------------------------------------------------------------------------
    # Update cycle
    # -------------------------------------------------------------------------

    def on_venue_update(
        self,
        venue: Union[VenueId, str],
        raw_sample: int,
        tx_hash: Optional[str] = None,
    ) -> UpdateOutcome:
        """
        Run one update -> spread -> simulate -> compound cycle.

        Raises:
            UnknownVenueError: venue not configured
            ConfigError: venue not initialized
            InvalidSampleError: malformed sample (update dropped)
            UnavailablePriceError: derived price is zero (update dropped)
        """
        venue = self._require_venue(venue)

        with self._lock:
            state = self._states.get(venue)
            if state is None:
                raise ConfigError(
                    f"Venue {venue.value} received an update before initialization",
                    details={"venue": venue.value},
                )

            new_price = derive_price(
                raw_sample, state.is_inverted, self.base.decimals, self.quote.decimals
            )
            if new_price == 0:
                raise UnavailablePriceError(
                    f"Zero price derived for {venue.value}",
                    details={"venue": venue.value, "raw_sample": str(raw_sample)},
                )

            previous = state.last_price
            if state.is_known and abs(new_price - previous) <= self.config.price_change_threshold:
                return UpdateOutcome(
                    venue=venue,
                    price_changed=False,
                    new_price=new_price,
                    previous_price=previous,
                    skip_reason=SkipReason.BELOW_THRESHOLD,
                    tx_hash=tx_hash,
                )

            state.last_price = new_price
            change_pct = pct_change(new_price, previous)

            try:
                pair = best_spread_pair(self._known_prices(), order=self.venues)
            except InsufficientVenuesError:
                return UpdateOutcome(
                    venue=venue,
                    price_changed=True,
                    new_price=new_price,
                    previous_price=previous,
                    price_change_pct=change_pct,
                    skip_reason=SkipReason.INSUFFICIENT_VENUES,
                    tx_hash=tx_hash,
                )

            return self._simulate_and_compound(
                venue, new_price, previous, change_pct, pair, tx_hash
            )

    def _simulate_and_compound(
        self,
        venue: VenueId,
        new_price: Decimal,
        previous: Decimal,
        change_pct: Optional[Decimal],
        pair: SpreadPair,
        tx_hash: Optional[str],
    ) -> UpdateOutcome:
        budget_before = self.ledger.snapshot()
        result = self.simulator.simulate(
            pair.venue_a,
            self._states[pair.venue_a].last_price,
            pair.venue_b,
            self._states[pair.venue_b].last_price,
            budget_before,
            self.config.budget_pct_per_trade,
        )

        if result.is_profitable:
            self.ledger.apply_profit(result.net_profit_quote)
            logger.info(
                "Profitable simulation compounded",
                extra={"context": {
                    "buy": result.buy_venue.value,
                    "sell": result.sell_venue.value,
                    "net_profit": str(result.net_profit_quote),
                    "budget": str(self.ledger.snapshot()),
                }}
            )

        return UpdateOutcome(
            venue=venue,
            price_changed=True,
            new_price=new_price,
            previous_price=previous,
            price_change_pct=change_pct,
            best_pair=pair,
            arbitrage_result=result,
            budget_before=budget_before,
            budget_after=self.ledger.snapshot(),
            tx_hash=tx_hash,
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def current_budget(self) -> Decimal:
        """Current compounded budget."""
        return self.ledger.snapshot()

    def prices(self) -> dict[VenueId, Decimal]:
        """Last price per initialized venue (0 = unknown)."""
        with self._lock:
            return {venue: state.last_price for venue, state in self._states.items()}

    def best_pair(self) -> SpreadPair:
        """Current best spread pair. Raises InsufficientVenuesError."""
        return best_spread_pair(self.prices(), order=self.venues)

    def get_state(self, venue: Union[VenueId, str]) -> Optional[VenuePriceState]:
        return self._states.get(coerce_venue(venue))

    @property
    def initialized_venues(self) -> list[VenueId]:
        return [v for v in self.venues if v in self._states]

    def _known_prices(self) -> dict[VenueId, Decimal]:
        # Caller holds the lock
        return {venue: state.last_price for venue, state in self._states.items() if state.is_known}

    def _require_venue(self, venue: Union[VenueId, str]) -> VenueId:
        resolved = coerce_venue(venue)
        if resolved not in self.venues:
            raise UnknownVenueError(
                f"Venue {resolved.value} is not configured",
                details={"venue": resolved.value, "configured": [v.value for v in self.venues]},
            )
        return resolved
