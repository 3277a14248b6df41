"""Signal data models for the RSI/MACD trend strategy.

CRITICAL: All indicator values use Decimal. Never use float for signal computations.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class TrendAction(str, Enum):
    """Action implied by a trend score once compared to the entry threshold."""

    GO_LONG = "go_long"
    GO_SHORT = "go_short"
    HOLD = "hold"


@dataclass(frozen=True)
class MACDPoint:
    """One MACD reading: line (fast EMA - slow EMA), its signal EMA, histogram."""

    macd: Decimal
    signal: Decimal
    histogram: Decimal


@dataclass(frozen=True)
class IndicatorReadings:
    """Latest indicator values for one tick, the input of the signal reducer."""

    rsi: Decimal
    macd: MACDPoint


@dataclass(frozen=True)
class TrendSignal:
    """Reduced signal for one tick: score in [-2, 2] and the resulting action."""

    score: int
    action: TrendAction
    readings: IndicatorReadings
