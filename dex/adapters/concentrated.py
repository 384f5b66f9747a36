"""
dex/adapters/concentrated.py - Concentrated-liquidity pool reader and Swap decoder.

Covers Uniswap V3, Aerodrome Slipstream and PancakeSwap V3 pools:
- slot0() / token0() / token1() via eth_call
- Swap event logs from eth_getLogs -> sqrtPriceX96

All three expose sqrtPriceX96 as the first word of slot0() and as the
third data word of their Swap event.
"""

from dataclasses import dataclass

from chains.providers import RPCProvider
from core.constants import EventLayout, VenueId
from core.exceptions import DecodeError, InfraError
from core.logging import get_logger
from strategy.config import VenueSettings

logger = get_logger(__name__)


# =============================================================================
# ABI ENCODING
# =============================================================================

# keccak256("slot0()")[:4]
SELECTOR_SLOT0 = "0x3850c7bd"
# keccak256("token0()")[:4]
SELECTOR_TOKEN0 = "0x0dfe1681"
# keccak256("token1()")[:4]
SELECTOR_TOKEN1 = "0xd21220a7"

# Swap(address,address,int256,int256,uint160,uint128,int24)
SWAP_TOPIC_UNISWAP_V3 = "0xc42079f94a6350d7e6235f29174924f928cc2ac818eb64fed8004e115fbcca67"
# Swap(address,address,int256,int256,uint160,uint128,int24,uint128,uint128)
SWAP_TOPIC_PANCAKESWAP_V3 = "0x19b47279256b2a23a1665c810c8d55a1758940ee09377d4f8d26497a3577dc83"

SWAP_TOPICS: dict[EventLayout, str] = {
    EventLayout.UNISWAP_V3: SWAP_TOPIC_UNISWAP_V3,
    EventLayout.PANCAKESWAP_V3: SWAP_TOPIC_PANCAKESWAP_V3,
}

# Non-indexed words before sqrtPriceX96: amount0, amount1
SQRT_PRICE_WORD_INDEX = 2

# Non-indexed words per layout
SWAP_DATA_WORDS: dict[EventLayout, int] = {
    EventLayout.UNISWAP_V3: 5,
    EventLayout.PANCAKESWAP_V3: 7,
}

WORD_HEX_LEN = 64


def _strip_hex(hex_data: str) -> str:
    return hex_data[2:] if hex_data.startswith("0x") else hex_data


def decode_word(hex_data: str, index: int) -> int:
    """
    Decode the index-th 32-byte word as an unsigned int.

    Raises DecodeError when the payload is too short or not hex.
    """
    if not hex_data:
        raise DecodeError("Empty ABI payload", details={"index": index})
    data = _strip_hex(hex_data)
    start = index * WORD_HEX_LEN
    end = start + WORD_HEX_LEN
    if len(data) < end:
        raise DecodeError(
            f"ABI payload too short: {len(data)} chars, need {end}",
            details={"data_length": len(data), "index": index, "raw": hex_data[:100]},
        )
    try:
        return int(data[start:end], 16)
    except ValueError:
        raise DecodeError(
            "ABI payload is not hex",
            details={"index": index, "raw": hex_data[:100]},
        )


def decode_address(hex_data: str, index: int = 0) -> str:
    """Decode an address-typed word (lowercase, 0x-prefixed)."""
    value = decode_word(hex_data, index)
    if value >> 160:
        raise DecodeError(
            "Word does not hold an address",
            details={"index": index, "raw": hex_data[:100]},
        )
    return "0x" + format(value, "040x")


def _hex_int(value) -> int:
    if isinstance(value, int):
        return value
    return int(value, 16)


# =============================================================================
# SWAP EVENTS
# =============================================================================

@dataclass(frozen=True)
class SwapEvent:
    """One decoded Swap log."""
    venue: VenueId
    sqrt_price_x96: int
    block_number: int
    log_index: int
    tx_hash: str | None = None

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)


def decode_swap_log(venue: VenueId, log: dict, layout: EventLayout) -> SwapEvent:
    """
    Decode sqrtPriceX96 and ordering fields from a raw Swap log.

    Raises:
        DecodeError: wrong topic, short data or missing block fields
    """
    topics = log.get("topics") or []
    expected = SWAP_TOPICS[layout]
    if not topics or topics[0].lower() != expected:
        raise DecodeError(
            f"Not a {layout.value} Swap log",
            details={"venue": venue.value, "topic0": topics[0] if topics else None},
        )

    data = log.get("data", "")
    if len(_strip_hex(data)) < SWAP_DATA_WORDS[layout] * WORD_HEX_LEN:
        raise DecodeError(
            f"Swap data too short for {layout.value}",
            details={"venue": venue.value, "data_length": len(_strip_hex(data))},
        )

    try:
        block_number = _hex_int(log["blockNumber"])
        log_index = _hex_int(log["logIndex"])
    except (KeyError, TypeError, ValueError):
        raise DecodeError(
            "Swap log without block position",
            details={"venue": venue.value, "tx_hash": log.get("transactionHash")},
        )

    return SwapEvent(
        venue=venue,
        sqrt_price_x96=decode_word(data, SQRT_PRICE_WORD_INDEX),
        block_number=block_number,
        log_index=log_index,
        tx_hash=log.get("transactionHash"),
    )


# =============================================================================
# POOL READER
# =============================================================================

class PoolReader:
    """
    Reads pool state over eth_call.

    Usage:
        reader = PoolReader(provider)
        token0, token1 = await reader.get_tokens(pool)
        sqrt_price_x96 = await reader.get_sqrt_price_x96(pool)
    """

    def __init__(self, provider: RPCProvider):
        self.provider = provider

    async def _call(self, pool: str, selector: str) -> str:
        response = await self.provider.eth_call(to=pool, data=selector)
        if not response.result or response.result == "0x":
            raise InfraError(
                f"Empty eth_call result from {pool}",
                details={"pool": pool, "selector": selector},
            )
        return response.result

    async def get_tokens(self, pool: str) -> tuple[str, str]:
        """(token0, token1) of the pool."""
        token0 = decode_address(await self._call(pool, SELECTOR_TOKEN0))
        token1 = decode_address(await self._call(pool, SELECTOR_TOKEN1))
        return token0, token1

    async def get_sqrt_price_x96(self, pool: str) -> int:
        """Current sqrtPriceX96 (first word of slot0)."""
        return decode_word(await self._call(pool, SELECTOR_SLOT0), 0)


# =============================================================================
# VENUE ADAPTER
# =============================================================================

@dataclass(frozen=True)
class VenueAdapter:
    """Binds one configured venue to its pool and Swap layout."""
    settings: VenueSettings

    @property
    def venue(self) -> VenueId:
        return self.settings.venue

    @property
    def pool_address(self) -> str:
        return self.settings.pool_address

    @property
    def swap_topic(self) -> str:
        return SWAP_TOPICS[self.settings.event_layout]

    def matches(self, log: dict) -> bool:
        """True if the log was emitted by this venue's pool."""
        return (log.get("address") or "").lower() == self.pool_address.lower()

    def decode(self, log: dict) -> SwapEvent:
        return decode_swap_log(self.venue, log, self.settings.event_layout)
