# PATH: core/models.py
"""
Core data models for SPREADWATCH.

All quote-currency amounts are Decimal. Raw sqrtPriceX96 samples are int.
Results (ArbitrageResult, UpdateOutcome) are frozen: derived per update,
never mutated after construction.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from core.constants import MAX_TOKEN_DECIMALS, SkipReason, VenueId
from core.exceptions import UnknownVenueError, ValidationError


def coerce_venue(value: Union[VenueId, str]) -> VenueId:
    """
    Resolve a venue tag.

    Raises UnknownVenueError for anything outside VenueId.
    """
    if isinstance(value, VenueId):
        return value
    try:
        return VenueId(value)
    except ValueError:
        raise UnknownVenueError(
            f"Unknown venue: {value!r}",
            details={"venue": str(value), "known": [v.value for v in VenueId]},
        )


# =============================================================================
# ASSETS
# =============================================================================

@dataclass(frozen=True)
class AssetMetadata:
    """Base or quote asset of the monitored pair."""
    address: str
    decimals: int
    symbol: str

    def __post_init__(self):
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int):
            raise ValidationError(
                f"Decimals must be int for {self.symbol}",
                details={"symbol": self.symbol, "decimals": repr(self.decimals)},
            )
        if not 0 <= self.decimals <= MAX_TOKEN_DECIMALS:
            raise ValidationError(
                f"Invalid decimals for {self.symbol}: {self.decimals}",
                details={"symbol": self.symbol, "decimals": self.decimals},
            )

    def same_address(self, other: str) -> bool:
        """Case-insensitive address comparison (checksummed vs lowercase)."""
        return self.address.lower() == other.lower()


# =============================================================================
# COST MODELS
# =============================================================================

@dataclass(frozen=True)
class ProportionalFee:
    """Fee proportional to leg notional, plus fixed gas per leg."""
    fee_bps: Decimal
    gas_fee_quote: Decimal


@dataclass(frozen=True)
class FixedFee:
    """Flat fee per leg regardless of notional, plus fixed gas per leg."""
    fixed_fee_quote: Decimal
    gas_fee_quote: Decimal


CostModel = Union[ProportionalFee, FixedFee]


# =============================================================================
# PRICE STATE
# =============================================================================

@dataclass
class VenuePriceState:
    """
    Last known price of one venue.

    last_price == 0 means unknown. is_inverted is fixed at initialization.
    Owned by MonitorEngine; nothing else writes to it.
    """
    venue: VenueId
    is_inverted: bool
    last_price: Decimal = Decimal("0")

    @property
    def is_known(self) -> bool:
        return self.last_price > 0


@dataclass(frozen=True)
class SpreadPair:
    """Venue pair with the largest absolute spread."""
    venue_a: VenueId
    venue_b: VenueId
    spread_pct: Decimal

    @property
    def abs_spread_pct(self) -> Decimal:
        return abs(self.spread_pct)


# =============================================================================
# SIMULATION RESULTS
# =============================================================================

@dataclass(frozen=True)
class LegBreakdown:
    """One side of a simulated trade."""
    venue: VenueId
    price: Decimal
    amount_before_fee: Decimal
    fee: Decimal
    amount_after_fee: Decimal
    gas_fee: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {
            "venue": self.venue.value,
            "price": str(self.price),
            "amount_before_fee": str(self.amount_before_fee),
            "fee": str(self.fee),
            "amount_after_fee": str(self.amount_after_fee),
            "gas_fee": str(self.gas_fee),
        }


@dataclass(frozen=True)
class TradeBreakdown:
    """Full cost breakdown of one direction."""
    budget_quote: Decimal
    budget_pct: Decimal
    trade_notional_quote: Decimal
    trade_size_base: Decimal
    buy: LegBreakdown
    sell: LegBreakdown
    total_gas_quote: Decimal

    @property
    def gross_spread_profit(self) -> Decimal:
        """Profit before any fee or gas."""
        return self.sell.amount_before_fee - self.buy.amount_before_fee

    @property
    def total_fees_quote(self) -> Decimal:
        return self.buy.fee + self.sell.fee

    def to_dict(self) -> Dict[str, Any]:
        return {
            "budget_quote": str(self.budget_quote),
            "budget_pct": str(self.budget_pct),
            "trade_notional_quote": str(self.trade_notional_quote),
            "trade_size_base": str(self.trade_size_base),
            "buy": self.buy.to_dict(),
            "sell": self.sell.to_dict(),
            "total_gas_quote": str(self.total_gas_quote),
            "total_fees_quote": str(self.total_fees_quote),
            "gross_spread_profit": str(self.gross_spread_profit),
        }


@dataclass(frozen=True)
class ArbitrageResult:
    """Best direction of a simulated two-leg trade."""
    is_profitable: bool
    net_profit_quote: Decimal
    net_profit_pct: Decimal
    buy_venue: VenueId
    sell_venue: VenueId
    breakdown: TradeBreakdown

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_profitable": self.is_profitable,
            "net_profit_quote": str(self.net_profit_quote),
            "net_profit_pct": str(self.net_profit_pct),
            "buy_venue": self.buy_venue.value,
            "sell_venue": self.sell_venue.value,
            "breakdown": self.breakdown.to_dict(),
        }


@dataclass(frozen=True)
class UpdateOutcome:
    """
    Result of one on_venue_update cycle.

    arbitrage_result is None when the cycle stopped early; skip_reason
    says why. tx_hash is passed through for display only.
    """
    venue: VenueId
    price_changed: bool
    new_price: Decimal
    previous_price: Decimal
    price_change_pct: Optional[Decimal] = None
    best_pair: Optional[SpreadPair] = None
    arbitrage_result: Optional[ArbitrageResult] = None
    skip_reason: Optional[SkipReason] = None
    budget_before: Optional[Decimal] = None
    budget_after: Optional[Decimal] = None
    tx_hash: Optional[str] = None

    @property
    def compounded(self) -> bool:
        """True when this cycle grew the budget."""
        return (
            self.budget_before is not None
            and self.budget_after is not None
            and self.budget_after > self.budget_before
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "venue": self.venue.value,
            "price_changed": self.price_changed,
            "new_price": str(self.new_price),
            "previous_price": str(self.previous_price),
            "price_change_pct": str(self.price_change_pct) if self.price_change_pct is not None else None,
            "best_pair": (
                {
                    "venue_a": self.best_pair.venue_a.value,
                    "venue_b": self.best_pair.venue_b.value,
                    "spread_pct": str(self.best_pair.spread_pct),
                }
                if self.best_pair else None
            ),
            "arbitrage_result": self.arbitrage_result.to_dict() if self.arbitrage_result else None,
            "skip_reason": self.skip_reason.value if self.skip_reason else None,
            "budget_before": str(self.budget_before) if self.budget_before is not None else None,
            "budget_after": str(self.budget_after) if self.budget_after is not None else None,
            "tx_hash": self.tx_hash,
        }
