#!/usr/bin/env python3
"""
strategy/jobs/run_monitor.py - CLI entrypoint for the spread monitor.

Features:
- Pool orientation + initial price from token0()/token1()/slot0()
- Swap log polling (eth_getLogs) across all venues, ordered by (block, log_index)
- Per-update spread selection and arbitrage simulation
- Compounding simulated budget, session summary on shutdown

Usage:
    spreadwatch --env-file .env
    python -m strategy.jobs.run_monitor --interval 1000 --duration 600
"""

import asyncio
import signal
import sys
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional

import click

from chains.providers import RPCProvider
from core.exceptions import (
    DecodeError,
    InfraError,
    InsufficientVenuesError,
    InvalidSampleError,
    MonitorError,
    UnavailablePriceError,
)
from core.format_money import format_price, format_spread
from core.logging import get_logger, set_global_context, setup_logging
from core.models import UpdateOutcome
from dex.adapters.concentrated import PoolReader, SwapEvent, VenueAdapter
from monitoring.report import render_outcome, render_summary
from strategy.config import Settings, load_settings
from strategy.engine import MonitorEngine

logger = get_logger(__name__)

SERVICE_NAME = "spreadwatch"
SERVICE_VERSION = "0.1.0"

# Errors that drop a single Swap event without stopping the loop
EVENT_ERRORS = (InvalidSampleError, UnavailablePriceError, DecodeError)


@dataclass
class LoopStats:
    """Counters for the session summary."""
    polls: int = 0
    poll_errors: int = 0
    events_seen: int = 0
    events_dropped: int = 0
    price_changes: int = 0
    simulations: int = 0
    profitable: int = 0

    def record(self, outcome: UpdateOutcome) -> None:
        if not outcome.price_changed:
            return
        self.price_changes += 1
        if outcome.arbitrage_result is not None:
            self.simulations += 1
            if outcome.arbitrage_result.is_profitable:
                self.profitable += 1


class MonitorLoop:
    """
    Polls Swap logs and drives the engine.

    Usage:
        loop = MonitorLoop(provider, engine, adapters)
        await loop.initialize()
        await loop.run(interval_ms=2000)
    """

    def __init__(
        self,
        provider: RPCProvider,
        engine: MonitorEngine,
        adapters: list[VenueAdapter],
        reader: Optional[PoolReader] = None,
        max_block_range: int = 2000,
        spread_log_threshold_pct=None,
        emit: Callable[[str], None] = click.echo,
    ):
        self.provider = provider
        self.engine = engine
        self.adapters = adapters
        self.reader = reader or PoolReader(provider)
        self.max_block_range = max_block_range
        self.spread_log_threshold_pct = (
            spread_log_threshold_pct
            if spread_log_threshold_pct is not None
            else engine.config.spread_log_threshold_pct
        )
        self.emit = emit
        self.names = {a.venue: a.settings.name for a in adapters}

        self.stats = LoopStats()
        self.last_block: Optional[int] = None
        self._shutdown_requested = False

    def request_shutdown(self) -> None:
        self._shutdown_requested = True

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Read orientation and slot0 price for every venue, then pin the start block.

        Any failure here is fatal (ConfigError / InfraError / DecodeError).
        """
        for adapter in self.adapters:
            token0, token1 = await self.reader.get_tokens(adapter.pool_address)
            sqrt_price_x96 = await self.reader.get_sqrt_price_x96(adapter.pool_address)
            state = self.engine.initialize_venue(adapter.venue, token0, token1, sqrt_price_x96)
            self.emit(
                f"{adapter.settings.name}: {format_price(state.last_price)} "
                f"{self.engine.quote.symbol}/{self.engine.base.symbol}"
            )

        try:
            pair = self.engine.best_pair()
            self.emit(
                f"Initial spread: {self.names[pair.venue_a]} vs {self.names[pair.venue_b]} "
                f"{format_spread(pair.spread_pct)}"
            )
        except InsufficientVenuesError:
            logger.warning("Fewer than two venues have an initial price")

        self.last_block, _ = await self.provider.get_block_number()
        logger.info(
            "Monitor initialized",
            extra={"context": {
                "start_block": self.last_block,
                "venues": [a.venue.value for a in self.adapters],
                "budget": str(self.engine.current_budget()),
            }}
        )

    # -------------------------------------------------------------------------
    # Polling
    # -------------------------------------------------------------------------

    def _adapter_for(self, log: dict) -> Optional[VenueAdapter]:
        for adapter in self.adapters:
            if adapter.matches(log):
                return adapter
        return None

    def _decode_logs(self, logs: list[dict]) -> list[SwapEvent]:
        events = []
        for log in logs:
            adapter = self._adapter_for(log)
            if adapter is None:
                continue
            try:
                events.append(adapter.decode(log))
            except DecodeError as e:
                self.stats.events_dropped += 1
                logger.warning(
                    f"Dropped undecodable Swap log: {e}",
                    extra={"context": {"venue": adapter.venue.value, **e.details}}
                )
        events.sort(key=lambda ev: ev.sort_key)
        return events

    def handle_event(self, event: SwapEvent) -> Optional[UpdateOutcome]:
        """Feed one Swap event to the engine and render the outcome."""
        self.stats.events_seen += 1
        try:
            outcome = self.engine.on_venue_update(
                event.venue, event.sqrt_price_x96, tx_hash=event.tx_hash
            )
        except EVENT_ERRORS as e:
            self.stats.events_dropped += 1
            logger.warning(
                f"Dropped Swap event: {e}",
                extra={"context": {
                    "venue": event.venue.value,
                    "block": event.block_number,
                    "log_index": event.log_index,
                    "tx_hash": event.tx_hash,
                }}
            )
            return None

        self.stats.record(outcome)
        for line in render_outcome(
            outcome,
            self.engine.base.symbol,
            self.engine.quote.symbol,
            self.spread_log_threshold_pct,
            self.names,
        ):
            self.emit(line)
        return outcome

    async def poll_once(self) -> list[UpdateOutcome]:
        """
        Process Swap logs from the blocks after last_block.

        At most max_block_range blocks are read per call. last_block only
        advances after the logs were fetched.

        Raises:
            InfraError: block number or log fetch failed
        """
        if self.last_block is None:
            raise InfraError("Monitor loop polled before initialize()")

        self.stats.polls += 1
        latest, _ = await self.provider.get_block_number()
        if latest <= self.last_block:
            return []

        from_block = self.last_block + 1
        to_block = min(latest, from_block + self.max_block_range - 1)

        topics = sorted({a.swap_topic for a in self.adapters})
        logs = await self.provider.get_logs(
            [a.pool_address for a in self.adapters], topics, from_block, to_block
        )
        self.last_block = to_block

        outcomes = []
        for event in self._decode_logs(logs):
            outcome = self.handle_event(event)
            if outcome is not None:
                outcomes.append(outcome)

        logger.debug(
            "Poll complete",
            extra={"context": {
                "from_block": from_block,
                "to_block": to_block,
                "logs": len(logs),
                "outcomes": len(outcomes),
            }}
        )
        return outcomes

    async def run(self, interval_ms: int, duration_s: Optional[float] = None) -> LoopStats:
        """Poll until shutdown is requested or duration_s elapses."""
        started = time.monotonic()

        while not self._shutdown_requested:
            try:
                await self.poll_once()
            except InfraError as e:
                self.stats.poll_errors += 1
                logger.warning(
                    f"Poll failed, retrying next cycle: {e}",
                    extra={"context": e.details}
                )

            if duration_s is not None and time.monotonic() - started >= duration_s:
                break
            if not self._shutdown_requested:
                await asyncio.sleep(interval_ms / 1000)

        logger.info("Monitor loop terminated")
        return self.stats

    def get_summary(self) -> dict:
        summary = asdict(self.stats)
        summary["initial_budget"] = str(self.engine.ledger.initial_budget)
        summary["final_budget"] = str(self.engine.current_budget())
        summary["total_profit"] = str(self.engine.ledger.total_profit)
        return summary


def build_monitor(
    settings: Settings,
    provider: Optional[RPCProvider] = None,
) -> MonitorLoop:
    """Wire provider, engine and adapters from settings."""
    provider = provider or RPCProvider(settings.rpc_urls)
    engine = MonitorEngine(
        settings.base,
        settings.quote,
        settings.monitor,
        settings.build_registry(),
        venues=[v.venue for v in settings.venues],
    )
    adapters = [VenueAdapter(v) for v in settings.venues]
    return MonitorLoop(
        provider,
        engine,
        adapters,
        max_block_range=settings.max_block_range,
    )


@click.command()
@click.option("--env-file", "-e", type=click.Path(dir_okay=False), default=None, help=".env file (default: search from cwd)")
@click.option("--interval", "-i", type=int, default=None, help="Poll interval in milliseconds (default: POLL_INTERVAL_MS)")
@click.option("--duration", "-d", type=float, default=None, help="Stop after this many seconds")
@click.option("--log-level", "-l", default="INFO", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]))
@click.option("--json-logs/--no-json-logs", default=False)
def main(
    env_file: Optional[str],
    interval: Optional[int],
    duration: Optional[float],
    log_level: str,
    json_logs: bool,
) -> None:
    """cbBTC/USDC spread monitor with simulated arbitrage on Base."""
    setup_logging(level=log_level, json_output=json_logs)
    set_global_context(service=SERVICE_NAME, version=SERVICE_VERSION)

    try:
        settings = load_settings(env_file=env_file)
    except MonitorError as e:
        logger.error(f"Configuration error: {e}", extra={"context": e.details})
        sys.exit(1)

    interval_ms = interval if interval is not None else settings.poll_interval_ms
    if interval_ms <= 0:
        raise click.BadParameter("must be > 0", param_hint="--interval")

    logger.info("Starting monitor", extra={"context": settings.to_log_dict()})

    try:
        loop = build_monitor(settings)
    except MonitorError as e:
        logger.error(f"Configuration error: {e}", extra={"context": e.details})
        sys.exit(1)

    def handle_shutdown(signum: int, frame: object) -> None:
        logger.info("Shutdown requested", extra={"context": {"signal": signum}})
        loop.request_shutdown()

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    async def run() -> None:
        try:
            await loop.initialize()
            await loop.run(interval_ms, duration)
        finally:
            await loop.provider.close()

    exit_code = 0
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Monitor interrupted")
    except MonitorError as e:
        logger.error(f"Monitor error: {e}", extra={"context": e.details})
        exit_code = 1

    summary = loop.get_summary()
    logger.info("Final session summary", extra={"context": summary})
    for line in render_summary(summary, settings.quote.symbol):
        click.echo(line)
    logger.info("RPC endpoint stats", extra={"context": loop.provider.get_stats_summary()})

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
