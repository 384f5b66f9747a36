# PATH: core/exceptions.py
"""
Typed exceptions for SPREADWATCH.

Per-event errors (InvalidSample, PriceUnavailable, InsufficientVenues) abort
one update cycle only. Configuration errors are fatal before monitoring.
"""

from typing import Optional

from core.constants import ErrorCode


class MonitorError(Exception):
    """Base exception for SPREADWATCH."""

    default_code = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str = "",
        code: Optional[ErrorCode] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class InvalidSampleError(MonitorError):
    """Raw sqrtPriceX96 sample is negative or not an integer."""
    default_code = ErrorCode.INVALID_SAMPLE


class UnavailablePriceError(MonitorError):
    """Derived price is zero or otherwise unusable."""
    default_code = ErrorCode.PRICE_UNAVAILABLE


class InsufficientVenuesError(MonitorError):
    """Fewer than two venues have a known price."""
    default_code = ErrorCode.INSUFFICIENT_VENUES


class UnknownVenueError(MonitorError):
    """Venue has no registered cost model."""
    default_code = ErrorCode.UNKNOWN_VENUE


class ConfigError(MonitorError):
    """Configuration is missing or malformed."""
    default_code = ErrorCode.CONFIG_INVALID


class ValidationError(MonitorError):
    """Invalid numeric input."""
    default_code = ErrorCode.VALIDATION_FAILED


class InfraError(MonitorError):
    """Infrastructure-related errors (RPC, timeouts)."""
    default_code = ErrorCode.INFRA_RPC_ERROR


class DecodeError(MonitorError):
    """ABI payload could not be decoded."""
    default_code = ErrorCode.DECODE_FAILED
