# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for SPREADWATCH tests.
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.constants import VenueId  # noqa: E402
from core.models import AssetMetadata, FixedFee, ProportionalFee  # noqa: E402
from dex.price_codec import sqrt_price_x96_from_price  # noqa: E402
from strategy.config import MonitorConfig  # noqa: E402
from strategy.costs import CostModelRegistry  # noqa: E402

# Base mainnet addresses; USDC sorts below cbBTC, so USDC is token0
CBBTC_ADDRESS = "0xcbB7C0000aB88B473b1f5aFd9ef808440eed33Bf"
USDC_ADDRESS = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"

CBBTC = AssetMetadata(address=CBBTC_ADDRESS, decimals=8, symbol="cbBTC")
USDC = AssetMetadata(address=USDC_ADDRESS, decimals=6, symbol="USDC")


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


def sample_for(price, is_inverted: bool = True) -> int:
    """sqrtPriceX96 encoding a cbBTC price in USDC."""
    return sqrt_price_x96_from_price(Decimal(price), is_inverted, CBBTC.decimals, USDC.decimals)


def default_cost_models() -> dict:
    return {
        VenueId.UNISWAP_V3: ProportionalFee(fee_bps=Decimal("0"), gas_fee_quote=Decimal("0.004")),
        VenueId.AERODROME_SLIPSTREAM: ProportionalFee(fee_bps=Decimal("1"), gas_fee_quote=Decimal("0.005")),
        VenueId.PANCAKESWAP_V3: FixedFee(fixed_fee_quote=Decimal("0.01"), gas_fee_quote=Decimal("0.003")),
    }


@pytest.fixture
def base_asset() -> AssetMetadata:
    return CBBTC


@pytest.fixture
def quote_asset() -> AssetMetadata:
    return USDC


@pytest.fixture
def registry() -> CostModelRegistry:
    return CostModelRegistry(default_cost_models())


@pytest.fixture
def monitor_config() -> MonitorConfig:
    return MonitorConfig(
        price_change_threshold=Decimal("0.01"),
        initial_budget_quote=Decimal("10000"),
        budget_pct_per_trade=Decimal("5"),
    )
