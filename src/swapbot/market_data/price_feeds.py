"""Ranked SUI/USD price sources with first-success-wins fallthrough.

CoinGecko is queried over its public JSON endpoint with aiohttp; Binance and
Kraken tickers come through ccxt's async exchanges. Every call is bounded by
the configured per-source timeout and carries the bot's User-Agent.
"""

import asyncio
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation

import aiohttp
import ccxt.async_support as ccxt_async

from swapbot.config import PriceSettings
from swapbot.logging import get_logger
from swapbot.models import PriceSample

logger = get_logger(__name__)

CACHED_SOURCE = "Cached"


def _to_price(raw: object) -> Decimal | None:
    """Parse a numeric price field; None when absent or not a number."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        price = Decimal(str(raw))
    except InvalidOperation:
        return None
    return price if price.is_finite() else None


class PriceSource(ABC):
    """One external SUI/USD price endpoint."""

    name: str

    @abstractmethod
    async def fetch_price(self) -> Decimal | None:
        """Return the current price, or None if the response had no price.

        May raise on transport or HTTP errors; the aggregator handles them.
        """
        ...

    async def connect(self) -> None:
        """Load whatever the source needs before its first fetch."""

    async def close(self) -> None:
        """Release network resources held by the source."""


class CoinGeckoSource(PriceSource):
    """CoinGecko simple/price endpoint: {"sui": {"usd": <price>}}."""

    name = "CoinGecko"

    def __init__(self, url: str, user_agent: str, timeout: float) -> None:
        self._url = url
        self._headers = {"User-Agent": user_agent}
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def fetch_price(self) -> Decimal | None:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout, headers=self._headers
            )
        async with self._session.get(self._url) as resp:
            resp.raise_for_status()
            data = await resp.json(content_type=None)
        return _to_price((data.get("sui") or {}).get("usd"))

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None


class ExchangeTickerSource(PriceSource):
    """Last traded price of a spot ticker on a ccxt exchange."""

    def __init__(self, name: str, exchange: ccxt_async.Exchange, symbol: str) -> None:
        self.name = name
        self._exchange = exchange
        self._symbol = symbol

    async def fetch_price(self) -> Decimal | None:
        ticker = await self._exchange.fetch_ticker(self._symbol)
        return _to_price(ticker.get("last"))

    async def connect(self) -> None:
        """Load markets up front so the first fetch_ticker is a single request."""
        markets = await self._exchange.load_markets()
        logger.info("exchange_markets_loaded", source=self.name, market_count=len(markets))

    async def close(self) -> None:
        await self._exchange.close()


def build_price_sources(settings: PriceSettings) -> list[PriceSource]:
    """Create the ranked source list: CoinGecko, Binance, Kraken."""
    ccxt_config = {
        "enableRateLimit": True,
        "timeout": int(settings.source_timeout * 1000),  # ccxt uses milliseconds
        "userAgent": settings.user_agent,
    }
    return [
        CoinGeckoSource(
            settings.coingecko_url, settings.user_agent, settings.source_timeout
        ),
        ExchangeTickerSource(
            "Binance", ccxt_async.binance(dict(ccxt_config)), settings.binance_symbol
        ),
        ExchangeTickerSource(
            "Kraken", ccxt_async.kraken(dict(ccxt_config)), settings.kraken_symbol
        ),
    ]


class PriceFeedAggregator:
    """Queries sources in priority order and returns the first valid price.

    Never raises: source failures are logged and skipped, and when every
    source fails the last known price is returned with source "Cached".
    """

    def __init__(self, sources: list[PriceSource], settings: PriceSettings) -> None:
        self._sources = sources
        self._timeout = settings.source_timeout
        self._connect_timeout = settings.connect_timeout
        self._last_known_price = settings.initial_price

    @property
    def last_known_price(self) -> Decimal:
        return self._last_known_price

    async def fetch(self) -> PriceSample:
        for source in self._sources:
            try:
                price = await asyncio.wait_for(source.fetch_price(), self._timeout)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    "price_source_failed",
                    source=source.name,
                    error=str(e) or type(e).__name__,
                )
                continue

            if price is not None and price > 0:
                self._last_known_price = price
                return PriceSample(price=price, source=source.name)
            logger.warning("price_source_no_price", source=source.name)

        logger.warning("price_sources_exhausted", cached=str(self._last_known_price))
        return PriceSample(price=self._last_known_price, source=CACHED_SOURCE)

    async def connect(self) -> None:
        """Prepare every source; failures are logged and the source stays ranked."""
        for source in self._sources:
            try:
                await asyncio.wait_for(source.connect(), self._connect_timeout)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    "price_source_connect_failed",
                    source=source.name,
                    error=str(e) or type(e).__name__,
                )

    async def close(self) -> None:
        for source in self._sources:
            try:
                await source.close()
            except Exception:
                logger.warning("price_source_close_failed", source=source.name, exc_info=True)
