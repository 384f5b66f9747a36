"""
monitoring/report.py - Human-readable rendering of monitor results.

Pure functions returning lines; the caller decides where they go
(console via logger, file, tests).
"""

from decimal import Decimal
from typing import Mapping, Optional

from core.constants import SkipReason, VenueId
from core.format_money import format_money, format_pct, format_price, format_spread
from core.models import ArbitrageResult, SpreadPair, UpdateOutcome

SEPARATOR = "-" * 60


def _name(venue: VenueId, names: Optional[Mapping[VenueId, str]]) -> str:
    if names and venue in names:
        return names[venue]
    return venue.value


def _direction_marker(outcome: UpdateOutcome) -> str:
    if outcome.previous_price == 0:
        return "*"
    if outcome.new_price > outcome.previous_price:
        return "UP"
    if outcome.new_price < outcome.previous_price:
        return "DOWN"
    return "="


def render_spread(
    pair: SpreadPair,
    names: Optional[Mapping[VenueId, str]] = None,
) -> str:
    return (
        f"Best spread: {_name(pair.venue_a, names)} vs {_name(pair.venue_b, names)} "
        f"{format_spread(pair.spread_pct)}"
    )


def render_simulation(
    result: ArbitrageResult,
    base_symbol: str,
    quote_symbol: str,
    names: Optional[Mapping[VenueId, str]] = None,
) -> list[str]:
    """Direction, size, costs and net result of one simulation."""
    b = result.breakdown
    verdict = "PROFITABLE" if result.is_profitable else "not profitable"
    return [
        f"Simulation: buy {_name(result.buy_venue, names)} @ {format_price(b.buy.price)} -> "
        f"sell {_name(result.sell_venue, names)} @ {format_price(b.sell.price)} [{verdict}]",
        f"  Size: {format_money(b.trade_notional_quote, 2)} {quote_symbol} "
        f"({format_money(b.trade_size_base, 8)} {base_symbol}, {format_pct(b.budget_pct, 2)}% of budget)",
        f"  Spent: {format_money(b.buy.amount_after_fee)} {quote_symbol} "
        f"(fee {format_money(b.buy.fee)})",
        f"  Received: {format_money(b.sell.amount_after_fee)} {quote_symbol} "
        f"(fee {format_money(b.sell.fee)})",
        f"  Gas: {format_money(b.total_gas_quote)} {quote_symbol}",
        f"  Net: {format_money(result.net_profit_quote)} {quote_symbol} "
        f"({format_pct(result.net_profit_pct)}%)",
    ]


def render_outcome(
    outcome: UpdateOutcome,
    base_symbol: str,
    quote_symbol: str,
    spread_log_threshold_pct: Decimal = Decimal("0"),
    names: Optional[Mapping[VenueId, str]] = None,
) -> list[str]:
    """
    Lines describing one update cycle.

    Unchanged prices render nothing. Spreads with an absolute value below
    spread_log_threshold_pct render the price line only.
    """
    if not outcome.price_changed:
        return []

    change = (
        f" ({format_spread(outcome.price_change_pct)})"
        if outcome.price_change_pct is not None else ""
    )
    lines = [
        SEPARATOR,
        f"[{_direction_marker(outcome)}] {_name(outcome.venue, names)}: "
        f"{format_price(outcome.new_price)} {quote_symbol}/{base_symbol}{change}",
    ]

    if outcome.skip_reason == SkipReason.INSUFFICIENT_VENUES:
        lines.append("Waiting for a second venue price")
        return lines

    pair = outcome.best_pair
    if pair is None or pair.abs_spread_pct < spread_log_threshold_pct:
        return lines

    lines.append(render_spread(pair, names))

    if outcome.arbitrage_result is not None:
        lines.extend(render_simulation(outcome.arbitrage_result, base_symbol, quote_symbol, names))

    if outcome.budget_before is not None and outcome.budget_after is not None:
        lines.append(
            f"Budget: {format_money(outcome.budget_before, 2)} -> "
            f"{format_money(outcome.budget_after, 2)} {quote_symbol}"
        )

    if outcome.tx_hash:
        lines.append(f"Tx: {outcome.tx_hash}")

    return lines


def render_summary(summary: Mapping[str, object], quote_symbol: str) -> list[str]:
    """Session summary printed on shutdown."""
    return [
        "=" * 60,
        "SESSION SUMMARY",
        "=" * 60,
        f"Swap events: {summary.get('events_seen', 0)} "
        f"(dropped {summary.get('events_dropped', 0)})",
        f"Price changes: {summary.get('price_changes', 0)}",
        f"Simulations: {summary.get('simulations', 0)} "
        f"(profitable {summary.get('profitable', 0)})",
        f"Budget: {format_money(summary.get('initial_budget'), 2)} -> "
        f"{format_money(summary.get('final_budget'), 2)} {quote_symbol}",
        "=" * 60,
    ]
