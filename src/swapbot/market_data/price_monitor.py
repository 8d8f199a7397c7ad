"""SUI/USD price monitor -- polling loop, rolling history and derived signals.

Polls the PriceFeedAggregator on a fixed interval, keeps the last N price
records, and derives volatility, market sentiment and a dynamic slippage
tolerance from them. Subscribers registered with on_price_change() are
called synchronously, in registration order, whenever a single update moves
the price by more than the change threshold.

Errors never stop the monitor: a failed update bumps a consecutive-error
counter, which is reset once it reaches max_errors, and the last good
sample stays current.
"""

import asyncio
from collections import deque
from collections.abc import Callable
from decimal import Decimal

from swapbot.chain.types import floor_units
from swapbot.config import PriceSettings, SlippageSettings
from swapbot.logging import get_logger
from swapbot.market_data.price_feeds import PriceFeedAggregator
from swapbot.models import MarketSentiment, PriceRecord, PriceSample, PriceStats

logger = get_logger(__name__)

DEFAULT_SOURCE = "Default"

_BULL_SIZE_MULTIPLIER = Decimal("1.5")
_BEAR_SIZE_MULTIPLIER = Decimal("0.5")
_VOLATILITY_MULTIPLIER = Decimal("10")
_MAX_VOLATILITY_FACTOR = Decimal("5")

PriceChangeCallback = Callable[[Decimal, PriceSample], None]


class PriceMonitor:
    """Owns the current price sample, the price history and volatility.

    Args:
        aggregator: Source of price samples.
        settings: Poll interval, thresholds and window sizes.
        slippage: Bounds for get_dynamic_slippage().
    """

    def __init__(
        self,
        aggregator: PriceFeedAggregator,
        settings: PriceSettings,
        slippage: SlippageSettings,
    ) -> None:
        self._aggregator = aggregator
        self._settings = settings
        self._slippage = slippage
        self._current = PriceSample(
            price=settings.initial_price, source=DEFAULT_SOURCE, captured_at=0.0
        )
        self._history: deque[PriceRecord] = deque(maxlen=settings.history_size)
        self._volatility = Decimal("0")
        self._callbacks: list[PriceChangeCallback] = []
        self._error_count = 0
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]

    # -- state ------------------------------------------------------------

    @property
    def is_monitoring(self) -> bool:
        return self._running

    @property
    def current_sample(self) -> PriceSample:
        return self._current

    @property
    def current_price(self) -> Decimal:
        return self._current.price

    @property
    def volatility(self) -> Decimal:
        return self._volatility

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def history(self) -> list[PriceRecord]:
        """Snapshot of the price history, oldest first."""
        return list(self._history)

    # -- lifecycle --------------------------------------------------------

    async def start_monitoring(self) -> None:
        """Poll once immediately, then keep polling in the background.

        No-op if already monitoring.
        """
        if self._running:
            return
        self._running = True
        logger.info(
            "price_monitoring_started",
            update_interval=self._settings.update_interval,
        )
        await self.update_prices()
        self._task = asyncio.create_task(self._poll_loop())

    async def stop_monitoring(self) -> None:
        """Stop the polling loop. Safe to call when not monitoring."""
        was_running = self._running
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if was_running:
            logger.info("price_monitoring_stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._settings.update_interval)
            if not self._running:
                break
            await self.update_prices()

    # -- updates ----------------------------------------------------------

    async def update_prices(self) -> None:
        """Fetch one sample and fold it into the monitor state."""
        try:
            sample = await self._aggregator.fetch()
            if sample.price > 0:
                self._record(sample)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._error_count += 1
            logger.error(
                "price_update_error",
                error=str(e),
                error_count=self._error_count,
                max_errors=self._settings.max_errors,
            )
            if self._error_count >= self._settings.max_errors:
                logger.warning("price_update_errors_exhausted", using="cached_prices")
                self._error_count = 0

    def _record(self, sample: PriceSample) -> None:
        previous = self._current.price
        change = (sample.price - previous) / previous if previous > 0 else Decimal("0")

        # Volatility over the last `volatility_window` records, this one included
        keep = max(self._settings.volatility_window - 1, 0)
        recent = list(self._history)[len(self._history) - keep :] if keep else []
        changes = [record.change for record in recent] + [change]
        volatility = sum(abs(c) for c in changes) / Decimal(len(changes))

        self._current = sample
        self._volatility = volatility
        self._history.append(
            PriceRecord(
                timestamp=sample.captured_at,
                price=sample.price,
                change=change,
                volatility=volatility,
            )
        )
        self._error_count = 0

        logger.info(
            "price_updated",
            price=str(sample.price),
            change_pct=f"{change * 100:.2f}",
            source=sample.source,
        )

        if abs(change) > self._settings.change_threshold:
            self._notify(change)

    # -- subscribers ------------------------------------------------------

    def on_price_change(self, callback: PriceChangeCallback) -> None:
        """Register a handler called as callback(change, current_sample)."""
        if not callable(callback):
            raise TypeError("Price change callback must be callable")
        self._callbacks.append(callback)

    def _notify(self, change: Decimal) -> None:
        for callback in list(self._callbacks):
            try:
                callback(change, self._current)
            except Exception:
                logger.error("price_change_callback_failed", exc_info=True)

    # -- derived signals --------------------------------------------------

    def get_market_sentiment(self) -> MarketSentiment:
        window = self._settings.sentiment_window
        if len(self._history) < window:
            return MarketSentiment.NEUTRAL

        recent = list(self._history)[-window:]
        avg_change = sum(r.change for r in recent) / Decimal(len(recent))

        if avg_change > self._settings.bull_threshold:
            return MarketSentiment.BULL
        if avg_change < self._settings.bear_threshold:
            return MarketSentiment.BEAR
        return MarketSentiment.NEUTRAL

    def get_dynamic_slippage(self) -> Decimal:
        """Slippage tolerance that widens linearly with volatility.

        base + min(volatility * 10, 5) * base, capped at the max slippage.
        """
        base = self._slippage.min
        factor = min(self._volatility * _VOLATILITY_MULTIPLIER, _MAX_VOLATILITY_FACTOR)
        return min(base + factor * base, self._slippage.max)

    def get_suggested_trade_size(self, base_amount: int) -> int:
        """Scale a trade size by sentiment (advisory only)."""
        sentiment = self.get_market_sentiment()
        if sentiment is MarketSentiment.BULL:
            return floor_units(Decimal(base_amount) * _BULL_SIZE_MULTIPLIER)
        if sentiment is MarketSentiment.BEAR:
            return floor_units(Decimal(base_amount) * _BEAR_SIZE_MULTIPLIER)
        return base_amount

    def get_price_stats(self) -> PriceStats | None:
        if not self._history:
            return None
        prices = [r.price for r in self._history]
        return PriceStats(
            current=self._current.price,
            min=min(prices),
            max=max(prices),
            avg=sum(prices) / Decimal(len(prices)),
            volatility=self._volatility,
            source=self._current.source,
            last_updated=self._current.captured_at,
        )
