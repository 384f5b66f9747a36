"""
Unit tests for MonitorEngine: update -> spread -> simulate -> compound.

Samples are built from prices with the real codec, so every test runs
the full decode path.
"""

from decimal import Decimal

import pytest

from core.constants import SkipReason, VenueId
from core.exceptions import (
    ConfigError,
    InvalidSampleError,
    UnavailablePriceError,
    UnknownVenueError,
)
from core.models import ProportionalFee
from strategy.config import MonitorConfig
from strategy.costs import CostModelRegistry
from strategy.engine import MonitorEngine, detect_inversion
from tests.conftest import CBBTC, CBBTC_ADDRESS, USDC, USDC_ADDRESS, default_cost_models, sample_for

U = VenueId.UNISWAP_V3
A = VenueId.AERODROME_SLIPSTREAM
P = VenueId.PANCAKESWAP_V3

Q = Decimal("0.000001")


@pytest.fixture
def engine(registry, monitor_config):
    return MonitorEngine(CBBTC, USDC, monitor_config, registry)


def init(engine, venue, price, inverted=True):
    """Initialize a venue with USDC as token0 (inverted) unless told otherwise."""
    if inverted:
        token0, token1 = USDC_ADDRESS, CBBTC_ADDRESS
    else:
        token0, token1 = CBBTC_ADDRESS, USDC_ADDRESS
    sample = sample_for(price, inverted) if price else 0
    return engine.initialize_venue(venue, token0, token1, sample)


class TestInversion:
    """Orientation detection from token0/token1."""

    def test_quote_is_token0(self):
        assert detect_inversion(USDC, CBBTC, USDC_ADDRESS, CBBTC_ADDRESS) is True

    def test_base_is_token0(self):
        assert detect_inversion(USDC, CBBTC, CBBTC_ADDRESS, USDC_ADDRESS) is False

    def test_case_insensitive(self):
        assert detect_inversion(USDC, CBBTC, USDC_ADDRESS.lower(), CBBTC_ADDRESS.upper()) is True

    def test_foreign_pool(self):
        weth = "0x4200000000000000000000000000000000000006"
        with pytest.raises(ConfigError):
            detect_inversion(USDC, CBBTC, weth, CBBTC_ADDRESS)


class TestInitialization:
    """initialize_venue()."""

    def test_seeds_price_and_orientation(self, engine):
        state = init(engine, U, "90000")
        assert state.is_inverted is True
        assert state.last_price.quantize(Q) == Decimal("90000.000000")

        state = init(engine, A, "90200", inverted=False)
        assert state.is_inverted is False
        assert state.last_price.quantize(Q) == Decimal("90200.000000")

    def test_zero_initial_sample_is_unknown(self, engine):
        state = init(engine, U, None)
        assert state.last_price == 0
        assert not state.is_known
        assert engine.prices() == {U: Decimal("0")}

    def test_double_initialization(self, engine):
        init(engine, U, "90000")
        with pytest.raises(ConfigError):
            init(engine, U, "90100")

    def test_unknown_venue(self, engine):
        with pytest.raises(UnknownVenueError):
            engine.initialize_venue("sushiswap_v3", USDC_ADDRESS, CBBTC_ADDRESS, 1)

    def test_missing_cost_model_is_fatal(self, monitor_config):
        registry = CostModelRegistry({
            U: ProportionalFee(fee_bps=Decimal("0"), gas_fee_quote=Decimal("0")),
        })
        with pytest.raises(UnknownVenueError):
            MonitorEngine(CBBTC, USDC, monitor_config, registry, venues=[U, A])

    def test_invalid_config_is_fatal(self, registry):
        with pytest.raises(ConfigError):
            MonitorEngine(CBBTC, USDC, MonitorConfig(budget_pct_per_trade=Decimal("0")), registry)

    def test_venue_order_ignores_registry_order(self, monitor_config):
        models = default_cost_models()
        registry = CostModelRegistry({venue: models[venue] for venue in (P, A, U)})
        engine = MonitorEngine(CBBTC, USDC, monitor_config, registry)
        for venue in (P, A, U):
            init(engine, venue, "90000")

        assert engine.venues == [U, A, P]
        pair = engine.best_pair()
        assert (pair.venue_a, pair.venue_b) == (U, A)
        assert pair.spread_pct == 0

    def test_explicit_venues_are_sorted(self, registry, monitor_config):
        engine = MonitorEngine(CBBTC, USDC, monitor_config, registry, venues=["pancakeswap_v3", U])
        assert engine.venues == [U, P]


class TestUnknownVenueLeavesStateIntact:
    """Unknown venues fail without touching prices or budget."""

    def test_update_for_unconfigured_venue(self, engine):
        init(engine, U, "90000")
        init(engine, A, "90200")
        prices = engine.prices()
        budget = engine.current_budget()

        with pytest.raises(UnknownVenueError):
            engine.on_venue_update("sushiswap_v3", sample_for("95000"))

        assert engine.prices() == prices
        assert engine.current_budget() == budget

    def test_simulate_with_venue_missing_from_registry(self, monitor_config):
        models = default_cost_models()
        registry = CostModelRegistry({U: models[U], A: models[A]})
        engine = MonitorEngine(CBBTC, USDC, monitor_config, registry)
        init(engine, U, "90000")
        init(engine, A, "90200")
        prices = engine.prices()
        budget = engine.current_budget()

        with pytest.raises(UnknownVenueError):
            engine.simulator.simulate(
                U, Decimal("90000"), P, Decimal("95000"),
                budget, monitor_config.budget_pct_per_trade,
            )

        assert engine.prices() == prices
        assert engine.current_budget() == budget
        assert engine.ledger.total_profit == 0


class TestUpdateCycle:
    """on_venue_update()."""

    def test_update_before_initialization(self, engine):
        with pytest.raises(ConfigError):
            engine.on_venue_update(U, sample_for("90000"))

    def test_below_threshold(self, engine):
        init(engine, U, "90000")
        init(engine, A, "90200")
        before = engine.prices()

        outcome = engine.on_venue_update(U, sample_for("90000.005"))

        assert outcome.price_changed is False
        assert outcome.skip_reason == SkipReason.BELOW_THRESHOLD
        assert outcome.arbitrage_result is None
        assert engine.prices() == before
        assert engine.current_budget() == Decimal("10000")

    def test_single_venue_reports_insufficient(self, engine):
        init(engine, U, "90000")
        outcome = engine.on_venue_update(U, sample_for("90100"))

        assert outcome.price_changed is True
        assert outcome.skip_reason == SkipReason.INSUFFICIENT_VENUES
        assert outcome.best_pair is None
        assert engine.get_state(U).last_price.quantize(Q) == Decimal("90100.000000")

    def test_profitable_update_compounds(self, engine):
        init(engine, U, "89000")
        init(engine, A, "90200")

        outcome = engine.on_venue_update(U, sample_for("90000"), tx_hash="0xabc")

        assert outcome.price_changed is True
        assert (outcome.best_pair.venue_a, outcome.best_pair.venue_b) == (U, A)
        result = outcome.arbitrage_result
        assert (result.buy_venue, result.sell_venue) == (U, A)
        assert result.is_profitable is True
        assert result.net_profit_quote.quantize(Q) == Decimal("1.052000")
        assert outcome.budget_before == Decimal("10000")
        assert outcome.budget_after.quantize(Q) == Decimal("10001.052000")
        assert outcome.compounded is True
        assert outcome.tx_hash == "0xabc"
        assert outcome.price_change_pct > 0

    def test_next_trade_uses_compounded_budget(self, engine):
        init(engine, U, "89000")
        init(engine, A, "90200")
        first = engine.on_venue_update(U, sample_for("90000"))

        second = engine.on_venue_update(U, sample_for("89990"))

        assert second.budget_before == first.budget_after
        notional = second.arbitrage_result.breakdown.trade_notional_quote
        assert notional.quantize(Q) == (first.budget_after * Decimal("0.05")).quantize(Q)
        assert second.budget_after > second.budget_before

    def test_unprofitable_update_leaves_budget(self, engine):
        init(engine, U, "90000")
        init(engine, A, "90000")

        outcome = engine.on_venue_update(A, sample_for("90001"))

        assert outcome.arbitrage_result.is_profitable is False
        assert outcome.budget_after == outcome.budget_before == Decimal("10000")
        assert outcome.compounded is False

    def test_zero_sample_is_dropped(self, engine):
        init(engine, U, "90000")
        init(engine, A, "90200")
        before = engine.prices()

        with pytest.raises(UnavailablePriceError):
            engine.on_venue_update(U, 0)

        assert engine.prices() == before
        assert engine.current_budget() == Decimal("10000")

    def test_invalid_sample_is_dropped(self, engine):
        init(engine, U, "90000")
        before = engine.prices()

        with pytest.raises(InvalidSampleError):
            engine.on_venue_update(U, -5)

        assert engine.prices() == before

    def test_unknown_price_seeded_by_first_update(self, engine):
        init(engine, U, None)
        init(engine, A, "90200")

        outcome = engine.on_venue_update(U, sample_for("90000"))

        assert outcome.price_changed is True
        assert outcome.previous_price == 0
        assert outcome.price_change_pct is None
        assert outcome.arbitrage_result is not None

    def test_best_pair_across_three_venues(self, engine):
        init(engine, U, "90000")
        init(engine, A, "89900")
        init(engine, P, "90100")

        outcome = engine.on_venue_update(P, sample_for("90200"))

        assert (outcome.best_pair.venue_a, outcome.best_pair.venue_b) == (A, P)
        result = outcome.arbitrage_result
        assert (result.buy_venue, result.sell_venue) == (A, P)

    def test_budget_never_decreases(self, engine):
        init(engine, U, "90000")
        init(engine, A, "90000")
        budget = engine.current_budget()
        for price in ("90050", "89900", "90300", "90300.5", "89000", "90000"):
            engine.on_venue_update(A, sample_for(price))
            assert engine.current_budget() >= budget
            budget = engine.current_budget()

    def test_string_venue_accepted(self, engine):
        init(engine, U, "90000")
        outcome = engine.on_venue_update("uniswap_v3", sample_for("90500"))
        assert outcome.venue == U
