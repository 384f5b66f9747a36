"""
strategy/config.py - Monitor configuration.

Thresholds, budget and venue wiring, assembled from environment variables
(.env) on top of the defaults in config/venues.yaml.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional

from config import (
    load_env,
    load_venues,
    optional_env,
    parse_decimal_env,
    parse_int_env,
    require_env,
)
from core.constants import (
    DEFAULT_BUDGET_PCT_PER_TRADE,
    DEFAULT_INITIAL_BUDGET_QUOTE,
    DEFAULT_MAX_BLOCK_RANGE,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_PRICE_CHANGE_THRESHOLD,
    DEFAULT_SPREAD_LOG_THRESHOLD,
    EventLayout,
    VenueId,
)
from core.exceptions import ConfigError, ValidationError
from core.models import AssetMetadata, CostModel, ProportionalFee, coerce_venue
from strategy.costs import CostModelRegistry, cost_model_from_dict


@dataclass
class MonitorConfig:
    """Thresholds and budget for the simulation engine."""

    # Minimum absolute price move (quote units) that counts as a change
    price_change_threshold: Decimal = Decimal(DEFAULT_PRICE_CHANGE_THRESHOLD)

    # Starting simulated capital (quote units)
    initial_budget_quote: Decimal = Decimal(DEFAULT_INITIAL_BUDGET_QUOTE)

    # Share of the current budget used per simulated trade
    budget_pct_per_trade: Decimal = Decimal(DEFAULT_BUDGET_PCT_PER_TRADE)

    # Spreads below this (abs, percent) are not rendered
    spread_log_threshold_pct: Decimal = Decimal(DEFAULT_SPREAD_LOG_THRESHOLD)

    def validate(self) -> "MonitorConfig":
        """Raise ConfigError on out-of-range values."""
        if self.price_change_threshold < 0:
            raise ConfigError(
                f"price_change_threshold must be >= 0, got {self.price_change_threshold}",
                details={"key": "price_change_threshold"},
            )
        if self.initial_budget_quote <= 0:
            raise ConfigError(
                f"initial_budget_quote must be > 0, got {self.initial_budget_quote}",
                details={"key": "initial_budget_quote"},
            )
        if not 0 < self.budget_pct_per_trade <= 100:
            raise ConfigError(
                f"budget_pct_per_trade must be in (0, 100], got {self.budget_pct_per_trade}",
                details={"key": "budget_pct_per_trade"},
            )
        if self.spread_log_threshold_pct < 0:
            raise ConfigError(
                f"spread_log_threshold_pct must be >= 0, got {self.spread_log_threshold_pct}",
                details={"key": "spread_log_threshold_pct"},
            )
        return self

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "MonitorConfig":
        """Build from PRICE_CHANGE_THRESHOLD, INITIAL_BUDGET_USDC, etc."""
        def dec(key: str, default: str) -> Decimal:
            return parse_decimal_env(key, optional_env(key, default, env))

        return cls(
            price_change_threshold=dec("PRICE_CHANGE_THRESHOLD", DEFAULT_PRICE_CHANGE_THRESHOLD),
            initial_budget_quote=dec("INITIAL_BUDGET_USDC", DEFAULT_INITIAL_BUDGET_QUOTE),
            budget_pct_per_trade=dec("BUDGET_PCT_PER_TRADE", DEFAULT_BUDGET_PCT_PER_TRADE),
            spread_log_threshold_pct=dec("SPREAD_LOG_THRESHOLD", DEFAULT_SPREAD_LOG_THRESHOLD),
        ).validate()


@dataclass(frozen=True)
class VenueSettings:
    """One enabled venue: pool, Swap layout and cost model."""
    venue: VenueId
    name: str
    pool_address: str
    event_layout: EventLayout
    cost_model: CostModel


@dataclass
class Settings:
    """Everything the monitor needs before it starts."""
    rpc_urls: list[str]
    base: AssetMetadata
    quote: AssetMetadata
    venues: list[VenueSettings]
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    max_block_range: int = DEFAULT_MAX_BLOCK_RANGE

    def build_registry(self) -> CostModelRegistry:
        return CostModelRegistry({v.venue: v.cost_model for v in self.venues})

    def to_log_dict(self) -> dict[str, Any]:
        """Summary safe to log (RPC URLs may embed API keys)."""
        return {
            "rpc_endpoints": len(self.rpc_urls),
            "pair": f"{self.base.symbol}/{self.quote.symbol}",
            "venues": [v.venue.value for v in self.venues],
            "price_change_threshold": str(self.monitor.price_change_threshold),
            "initial_budget": str(self.monitor.initial_budget_quote),
            "budget_pct_per_trade": str(self.monitor.budget_pct_per_trade),
            "poll_interval_ms": self.poll_interval_ms,
        }


def _apply_cost_overrides(
    venue: VenueId,
    entry: Mapping[str, Any],
    env: Optional[Mapping[str, str]],
) -> CostModel:
    """Venue yaml entry + <PREFIX>_FEE_BPS / _FIXED_FEE_USDC / _GAS_FEE_USDC."""
    model = cost_model_from_dict(venue.value, entry)
    prefix = entry.get("env_prefix")
    if not prefix:
        return model

    bps_key = f"{prefix}_FEE_BPS"
    fixed_key = f"{prefix}_FIXED_FEE_USDC"
    gas_key = f"{prefix}_GAS_FEE_USDC"

    # Overrides may not switch the venue to the other cost shape
    wrong_key = fixed_key if isinstance(model, ProportionalFee) else bps_key
    if optional_env(wrong_key, None, env) is not None:
        raise ConfigError(
            f"{wrong_key} does not apply: {venue.value} uses a "
            f"{'proportional' if isinstance(model, ProportionalFee) else 'fixed'} fee",
            details={"key": wrong_key, "venue": venue.value},
        )

    gas = optional_env(gas_key, None, env)
    gas_fee = parse_decimal_env(gas_key, gas) if gas is not None else model.gas_fee_quote

    if isinstance(model, ProportionalFee):
        bps = optional_env(bps_key, None, env)
        merged = {"fee_bps": parse_decimal_env(bps_key, bps) if bps is not None else model.fee_bps}
    else:
        fixed = optional_env(fixed_key, None, env)
        merged = {
            "fixed_fee_quote": parse_decimal_env(fixed_key, fixed) if fixed is not None else model.fixed_fee_quote
        }
    merged["gas_fee_quote"] = gas_fee
    return cost_model_from_dict(venue.value, merged)


def load_venue_settings(
    venues_data: Mapping[str, Mapping[str, Any]],
    env: Optional[Mapping[str, str]] = None,
) -> list[VenueSettings]:
    """
    Enabled venues, in VenueId order.

    A venue is enabled when its pool_env variable is set.
    """
    enabled: list[VenueSettings] = []
    for venue_key, entry in venues_data.items():
        # An unknown venue id is fatal here, before monitoring starts
        venue = coerce_venue(venue_key)

        pool_env = entry.get("pool_env")
        if not pool_env:
            raise ConfigError(
                f"Venue {venue.value}: pool_env is required",
                details={"venue": venue.value},
            )
        pool_address = optional_env(pool_env, None, env)
        if pool_address is None:
            continue

        try:
            layout = EventLayout(entry.get("event_layout", EventLayout.UNISWAP_V3.value))
        except ValueError:
            raise ConfigError(
                f"Venue {venue.value}: unknown event_layout {entry.get('event_layout')!r}",
                details={"venue": venue.value},
            )

        enabled.append(VenueSettings(
            venue=venue,
            name=entry.get("name", venue.value),
            pool_address=pool_address,
            event_layout=layout,
            cost_model=_apply_cost_overrides(venue, entry, env),
        ))

    order = list(VenueId)
    enabled.sort(key=lambda v: order.index(v.venue))
    return enabled


def _load_asset(prefix: str, symbol: str, env: Optional[Mapping[str, str]]) -> AssetMetadata:
    address = require_env(f"{prefix}_ADDRESS", f"{symbol} token address", env)
    decimals_key = f"{prefix}_DECIMALS"
    decimals = parse_int_env(decimals_key, require_env(decimals_key, f"{symbol} token decimals", env))
    try:
        return AssetMetadata(address=address, decimals=decimals, symbol=symbol)
    except ValidationError as e:
        raise ConfigError(e.message, details={"key": decimals_key, **e.details})


def load_settings(
    env_file: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    venues_file: str = "venues.yaml",
) -> Settings:
    """
    Load and validate all settings.

    Args:
        env_file: .env path (default: search from cwd); ignored when env is given
        env: explicit environment mapping (tests); default os.environ
        venues_file: venue definitions in config/

    Raises:
        ConfigError: anything missing or malformed
    """
    if env is None:
        load_env(env_file)

    rpc_urls = [
        url.strip()
        for url in require_env("BASE_RPC_URL", "Base mainnet RPC endpoint(s), comma separated", env).split(",")
        if url.strip()
    ]
    if not rpc_urls:
        raise ConfigError("BASE_RPC_URL holds no endpoint", details={"key": "BASE_RPC_URL"})

    base = _load_asset("CB_BTC", "cbBTC", env)
    quote = _load_asset("USDC", "USDC", env)

    venues = load_venue_settings(load_venues(venues_file), env)
    if len(venues) < 2:
        raise ConfigError(
            f"At least 2 venues need a pool address, have {len(venues)}",
            details={"enabled": [v.venue.value for v in venues]},
        )

    poll_interval_ms = parse_int_env(
        "POLL_INTERVAL_MS",
        optional_env("POLL_INTERVAL_MS", str(DEFAULT_POLL_INTERVAL_MS), env),
    )
    if poll_interval_ms <= 0:
        raise ConfigError(
            f"POLL_INTERVAL_MS must be > 0, got {poll_interval_ms}",
            details={"key": "POLL_INTERVAL_MS"},
        )

    return Settings(
        rpc_urls=rpc_urls,
        base=base,
        quote=quote,
        venues=venues,
        monitor=MonitorConfig.from_env(env),
        poll_interval_ms=poll_interval_ms,
    )
