# PATH: core/constants.py
"""
Constants for SPREADWATCH.

Contains enums, defaults, and fixed-point constants.
Config values go to config/venues.yaml and .env.
"""

from decimal import Decimal
from enum import Enum
from typing import Final


# =============================================================================
# FIXED-POINT / UNITS
# =============================================================================

# sqrtPriceX96 binary scale
Q96: Final[int] = 2**96

BPS_DENOMINATOR: Final[Decimal] = Decimal("10000")
PCT_DENOMINATOR: Final[Decimal] = Decimal("100")

# Anything above this is a broken token config, not a real ERC20
MAX_TOKEN_DECIMALS: Final[int] = 36


# =============================================================================
# DEFAULTS (mirrored in .env.example)
# =============================================================================

DEFAULT_PRICE_CHANGE_THRESHOLD: Final[str] = "0.01"
DEFAULT_SPREAD_LOG_THRESHOLD: Final[str] = "0.0"
DEFAULT_INITIAL_BUDGET_QUOTE: Final[str] = "10000"
DEFAULT_BUDGET_PCT_PER_TRADE: Final[str] = "5"
DEFAULT_POLL_INTERVAL_MS: Final[int] = 2000
DEFAULT_MAX_BLOCK_RANGE: Final[int] = 2000


class VenueId(str, Enum):
    """
    Venues quoting the monitored pair.

    Declaration order is the canonical venue ordering: spread pairs are
    enumerated in this order and ties go to the earliest pair.
    """
    UNISWAP_V3 = "uniswap_v3"
    AERODROME_SLIPSTREAM = "aerodrome_slipstream"
    PANCAKESWAP_V3 = "pancakeswap_v3"


VENUE_ORDER: Final[tuple[VenueId, ...]] = tuple(VenueId)


class ErrorCode(str, Enum):
    """Error codes carried by every MonitorError."""
    # Per-event
    INVALID_SAMPLE = "INVALID_SAMPLE"
    PRICE_UNAVAILABLE = "PRICE_UNAVAILABLE"
    INSUFFICIENT_VENUES = "INSUFFICIENT_VENUES"

    # Configuration
    UNKNOWN_VENUE = "UNKNOWN_VENUE"
    CONFIG_INVALID = "CONFIG_INVALID"
    VALIDATION_FAILED = "VALIDATION_FAILED"

    # Collaborators
    INFRA_RPC_ERROR = "INFRA_RPC_ERROR"
    DECODE_FAILED = "DECODE_FAILED"

    UNKNOWN = "UNKNOWN"


class SkipReason(str, Enum):
    """Why an update cycle stopped before simulating."""
    BELOW_THRESHOLD = "BELOW_THRESHOLD"
    INSUFFICIENT_VENUES = "INSUFFICIENT_VENUES"


class EventLayout(str, Enum):
    """Swap event ABI layouts sharing the sqrtPriceX96 encoding."""
    UNISWAP_V3 = "uniswap_v3"          # also Aerodrome Slipstream
    PANCAKESWAP_V3 = "pancakeswap_v3"  # two extra protocol-fee words
