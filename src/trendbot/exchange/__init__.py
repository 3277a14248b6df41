"""Exchange client layer -- spot exchange integration via ccxt."""

from trendbot.exchange.ccxt_client import CcxtClient
from trendbot.exchange.client import ExchangeClient
from trendbot.exchange.types import (
    candle_from_ohlcv,
    round_to_step,
    split_symbol,
    timeframe_to_ms,
)

__all__ = [
    "CcxtClient",
    "ExchangeClient",
    "candle_from_ohlcv",
    "round_to_step",
    "split_symbol",
    "timeframe_to_ms",
]
