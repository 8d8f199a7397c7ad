"""Market data layer -- price sources, aggregation and the price monitor."""

from swapbot.market_data.price_feeds import PriceFeedAggregator, build_price_sources
from swapbot.market_data.price_monitor import PriceMonitor

__all__ = ["PriceFeedAggregator", "PriceMonitor", "build_price_sources"]
