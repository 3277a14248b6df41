"""Signal analysis for the RSI/MACD trend strategy.

Provides the indicator adapter (EMA, RSI, MACD over closing prices) and the
reducer that turns the latest readings into a trend score and action.
"""

from trendbot.signals.indicators import (
    compute_ema,
    compute_macd,
    compute_rsi,
    latest_readings,
)
from trendbot.signals.models import IndicatorReadings, MACDPoint, TrendAction, TrendSignal
from trendbot.signals.reducer import classify_score, compute_trend_score, reduce_readings

__all__ = [
    "IndicatorReadings",
    "MACDPoint",
    "TrendAction",
    "TrendSignal",
    "classify_score",
    "compute_ema",
    "compute_macd",
    "compute_rsi",
    "compute_trend_score",
    "latest_readings",
    "reduce_readings",
]
