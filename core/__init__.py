"""
core - Core utilities and models for SPREADWATCH.

This package contains:
- models.py: Data models (assets, cost models, price state, results)
- constants.py: Enums and constants
- exceptions.py: Typed exceptions with error codes
- math.py: Decimal helpers (no float money)
- format_money.py: Display formatting
- logging.py: Structured JSON logging
"""

from core.constants import ErrorCode, EventLayout, SkipReason, VenueId
from core.exceptions import (
    ConfigError,
    DecodeError,
    InfraError,
    InsufficientVenuesError,
    InvalidSampleError,
    MonitorError,
    UnavailablePriceError,
    UnknownVenueError,
    ValidationError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    ArbitrageResult,
    AssetMetadata,
    FixedFee,
    ProportionalFee,
    SpreadPair,
    UpdateOutcome,
    VenuePriceState,
)

__all__ = [
    # Constants
    "ErrorCode",
    "EventLayout",
    "SkipReason",
    "VenueId",
    # Exceptions
    "ConfigError",
    "DecodeError",
    "InfraError",
    "InsufficientVenuesError",
    "InvalidSampleError",
    "MonitorError",
    "UnavailablePriceError",
    "UnknownVenueError",
    "ValidationError",
    # Models
    "ArbitrageResult",
    "AssetMetadata",
    "FixedFee",
    "ProportionalFee",
    "SpreadPair",
    "UpdateOutcome",
    "VenuePriceState",
    # Logging
    "get_logger",
    "setup_logging",
]
