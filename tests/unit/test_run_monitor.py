"""
Unit tests for the monitor loop and CLI wiring.

Provider and pool reader are AsyncMocks; the engine is real.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from click.testing import CliRunner

from core.constants import EventLayout, VenueId
from core.exceptions import InfraError
from dex.adapters.concentrated import SWAP_TOPIC_PANCAKESWAP_V3, SWAP_TOPIC_UNISWAP_V3, VenueAdapter
from strategy.config import VenueSettings
from strategy.engine import MonitorEngine
from strategy.jobs.run_monitor import MonitorLoop, main
from tests.conftest import CBBTC, CBBTC_ADDRESS, USDC, USDC_ADDRESS, default_cost_models, sample_for

U = VenueId.UNISWAP_V3
A = VenueId.AERODROME_SLIPSTREAM
P = VenueId.PANCAKESWAP_V3

POOLS = {
    U: "0x00000000000000000000000000000000000000a1",
    A: "0x00000000000000000000000000000000000000b2",
    P: "0x00000000000000000000000000000000000000c3",
}
LAYOUTS = {U: EventLayout.UNISWAP_V3, A: EventLayout.UNISWAP_V3, P: EventLayout.PANCAKESWAP_V3}
TOPICS = {U: SWAP_TOPIC_UNISWAP_V3, A: SWAP_TOPIC_UNISWAP_V3, P: SWAP_TOPIC_PANCAKESWAP_V3}


def word(value: int) -> str:
    return format(value % 2**256, "064x")


def swap_log(venue: VenueId, price: str, block: int, index: int) -> dict:
    words = 7 if LAYOUTS[venue] == EventLayout.PANCAKESWAP_V3 else 5
    data = word(1) + word(2) + word(sample_for(price)) + word(0) * (words - 3)
    return {
        "address": POOLS[venue],
        "topics": [TOPICS[venue]],
        "data": "0x" + data,
        "blockNumber": hex(block),
        "logIndex": hex(index),
        "transactionHash": f"0x{block:x}{index:x}",
    }


def make_adapters() -> list[VenueAdapter]:
    models = default_cost_models()
    return [
        VenueAdapter(VenueSettings(
            venue=venue,
            name=venue.value,
            pool_address=POOLS[venue],
            event_layout=LAYOUTS[venue],
            cost_model=models[venue],
        ))
        for venue in (U, A, P)
    ]


@pytest.fixture
def loop(registry, monitor_config):
    provider = MagicMock()
    provider.get_block_number = AsyncMock(return_value=(1000, 5))
    provider.get_logs = AsyncMock(return_value=[])

    initial = {POOLS[U]: "90000", POOLS[A]: "90000", POOLS[P]: "90000"}
    reader = MagicMock()
    reader.get_tokens = AsyncMock(return_value=(USDC_ADDRESS, CBBTC_ADDRESS))
    reader.get_sqrt_price_x96 = AsyncMock(side_effect=lambda pool: sample_for(initial[pool]))

    engine = MonitorEngine(CBBTC, USDC, monitor_config, registry)
    lines: list[str] = []
    monitor = MonitorLoop(provider, engine, make_adapters(), reader=reader, max_block_range=50, emit=lines.append)
    monitor.lines = lines
    return monitor


class TestInitialize:
    """Startup reads."""

    @pytest.mark.asyncio
    async def test_initialize_seeds_every_venue(self, loop):
        await loop.initialize()

        assert loop.engine.initialized_venues == [U, A, P]
        assert loop.last_block == 1000
        assert all(state.is_inverted for state in (loop.engine.get_state(v) for v in (U, A, P)))
        assert any(line.startswith("Initial spread:") for line in loop.lines)

    @pytest.mark.asyncio
    async def test_poll_before_initialize(self, loop):
        with pytest.raises(InfraError):
            await loop.poll_once()


class TestPollOnce:
    """Log fetching and ordering."""

    @pytest.mark.asyncio
    async def test_no_new_blocks(self, loop):
        await loop.initialize()
        assert await loop.poll_once() == []
        loop.provider.get_logs.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_events_processed_in_block_order(self, loop):
        await loop.initialize()
        loop.provider.get_block_number.return_value = (1010, 5)
        # Returned out of order on purpose
        loop.provider.get_logs.return_value = [
            swap_log(A, "90300", block=1005, index=1),
            swap_log(U, "90100", block=1002, index=7),
            swap_log(P, "89900", block=1005, index=0),
        ]

        outcomes = await loop.poll_once()

        assert [o.venue for o in outcomes] == [U, P, A]
        assert loop.last_block == 1010
        assert loop.stats.events_seen == 3
        assert loop.stats.price_changes == 3
        args = loop.provider.get_logs.await_args.args
        assert args[0] == [POOLS[U], POOLS[A], POOLS[P]]
        assert sorted(args[1]) == sorted({SWAP_TOPIC_UNISWAP_V3, SWAP_TOPIC_PANCAKESWAP_V3})
        assert args[2:] == (1001, 1010)

    @pytest.mark.asyncio
    async def test_block_range_is_capped(self, loop):
        await loop.initialize()
        loop.provider.get_block_number.return_value = (5000, 5)

        await loop.poll_once()

        assert loop.provider.get_logs.await_args.args[2:] == (1001, 1050)
        assert loop.last_block == 1050

    @pytest.mark.asyncio
    async def test_bad_events_are_dropped(self, loop):
        await loop.initialize()
        zero_price = swap_log(U, "90100", block=1001, index=0)
        zero_price["data"] = "0x" + word(1) + word(2) + word(0) + word(0) * 2
        truncated = swap_log(A, "90100", block=1001, index=1)
        truncated["data"] = "0x" + word(1)
        foreign = swap_log(U, "90100", block=1001, index=2)
        foreign["address"] = "0x" + "ff" * 20

        loop.provider.get_logs.return_value = [zero_price, truncated, foreign]
        loop.provider.get_block_number.return_value = (1004, 5)

        outcomes = await loop.poll_once()

        assert outcomes == []
        assert loop.stats.events_seen == 1
        assert loop.stats.events_dropped == 2
        assert loop.engine.get_state(U).last_price.quantize(Decimal("0.01")) == Decimal("90000.00")

    @pytest.mark.asyncio
    async def test_profitable_event_compounds(self, loop):
        await loop.initialize()
        loop.provider.get_block_number.return_value = (1001, 5)
        loop.provider.get_logs.return_value = [swap_log(A, "90200", block=1001, index=0)]

        outcomes = await loop.poll_once()

        assert outcomes[0].arbitrage_result.is_profitable
        assert loop.engine.current_budget() > Decimal("10000")
        assert loop.stats.profitable == 1
        assert any("PROFITABLE" in line for line in loop.lines)


class TestRun:
    """Loop lifecycle."""

    @pytest.mark.asyncio
    async def test_run_stops_on_shutdown(self, loop):
        await loop.initialize()

        async def stop_after_first(*args):
            loop.request_shutdown()
            return (1000, 5)

        loop.provider.get_block_number = AsyncMock(side_effect=stop_after_first)
        stats = await loop.run(interval_ms=1)

        assert stats.polls == 1
        assert loop.shutdown_requested

    @pytest.mark.asyncio
    async def test_run_survives_rpc_failure(self, loop):
        await loop.initialize()
        loop.provider.get_block_number = AsyncMock(side_effect=InfraError("down"))

        stats = await loop.run(interval_ms=1, duration_s=0)

        assert stats.poll_errors == 1

    @pytest.mark.asyncio
    async def test_summary(self, loop):
        await loop.initialize()
        summary = loop.get_summary()
        assert summary["initial_budget"] == "10000"
        assert summary["final_budget"] == "10000"
        assert summary["events_seen"] == 0


class TestCli:
    """click entrypoint."""

    def test_help(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "--env-file" in result.output
        assert "--json-logs" in result.output

    def test_missing_config_exits(self, tmp_path, monkeypatch):
        for key in ("BASE_RPC_URL", "CB_BTC_ADDRESS", "USDC_ADDRESS"):
            monkeypatch.delenv(key, raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("# no settings\n")

        result = CliRunner().invoke(main, ["--env-file", str(env_file)])

        assert result.exit_code == 1
