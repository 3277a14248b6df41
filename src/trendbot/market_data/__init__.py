"""Market data layer -- candle sources, live polling feed and the rolling window."""

from trendbot.market_data.feed import LiveCandleFeed, LiveSource
from trendbot.market_data.source import CandleSource, Tick
from trendbot.market_data.window import RollingWindow

__all__ = ["CandleSource", "LiveCandleFeed", "LiveSource", "RollingWindow", "Tick"]
