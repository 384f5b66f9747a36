"""
dex/adapters/ - Pool readers and Swap log decoders.

Adapters:
- concentrated: Uniswap V3 / Aerodrome Slipstream / PancakeSwap V3 pools
"""

from dex.adapters.concentrated import (
    PoolReader,
    SwapEvent,
    VenueAdapter,
    decode_swap_log,
)

__all__ = [
    "PoolReader",
    "SwapEvent",
    "VenueAdapter",
    "decode_swap_log",
]
