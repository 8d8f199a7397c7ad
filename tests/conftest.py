"""Shared test fixtures for the swap bot."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from swapbot.config import (
    AppSettings,
    ChainSettings,
    PriceSettings,
    ProtocolSettings,
    QuoteSettings,
    SlippageSettings,
    SwapSettings,
)
from swapbot.models import PriceSample

OWNER = "0x" + "ab" * 32


@pytest.fixture
def owner() -> str:
    return OWNER


@pytest.fixture
def protocol() -> ProtocolSettings:
    return ProtocolSettings()


@pytest.fixture
def slippage_settings() -> SlippageSettings:
    return SlippageSettings()


@pytest.fixture
def quote_settings() -> QuoteSettings:
    return QuoteSettings()


@pytest.fixture
def price_settings() -> PriceSettings:
    """Price settings with a long poll interval so background polls never fire."""
    return PriceSettings(update_interval=3600.0, source_timeout=0.05)


@pytest.fixture
def mock_settings(price_settings: PriceSettings) -> AppSettings:
    """Return AppSettings with test defaults (no delays, long timer interval)."""
    return AppSettings(
        log_level="DEBUG",
        chain=ChainSettings(rpc_url="http://localhost:9000"),
        swap=SwapSettings(interval=3600.0, settle_delay=0.0, price_trigger_delay=0.0),
        price=price_settings,
    )


@pytest.fixture
def mock_aggregator() -> AsyncMock:
    """Aggregator that always returns the initial default price."""
    aggregator = AsyncMock()
    aggregator.fetch = AsyncMock(
        return_value=PriceSample(price=Decimal("3.25"), source="CoinGecko")
    )
    return aggregator
