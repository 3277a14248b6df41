"""Reduction of the latest RSI and MACD readings to an integer trend score.

Scoring rule (kept exactly for compatibility with recorded runs):
- RSI below the oversold band adds 1, above the overbought band subtracts 1,
  anything inside [oversold, overbought] leaves the score unchanged.
- MACD line above its signal line adds 1, otherwise subtracts 1. This half
  has no neutral zone, so equal lines count as bearish.

The score therefore lies in [-2, 2]. A score at or above the entry threshold
is a long-bias action, at or below its negative a short-bias action, anything
strictly between is a hold. The bands and the threshold are fixed and not
read from configuration.
"""

from decimal import Decimal

from trendbot.signals.models import IndicatorReadings, TrendAction, TrendSignal

RSI_OVERSOLD = Decimal("30")
RSI_OVERBOUGHT = Decimal("70")
ENTRY_THRESHOLD = 2


def compute_trend_score(rsi: Decimal, macd: Decimal, signal: Decimal) -> int:
    """Combine one RSI vote and one MACD vote into a score in [-2, 2]."""
    score = 0

    if rsi < RSI_OVERSOLD:
        score += 1
    elif rsi > RSI_OVERBOUGHT:
        score -= 1

    if macd > signal:
        score += 1
    else:
        score -= 1

    return score


def classify_score(score: int) -> TrendAction:
    """Map a trend score to an action using the strict entry threshold."""
    if score >= ENTRY_THRESHOLD:
        return TrendAction.GO_LONG
    if score <= -ENTRY_THRESHOLD:
        return TrendAction.GO_SHORT
    return TrendAction.HOLD


def reduce_readings(readings: IndicatorReadings) -> TrendSignal:
    """Score the latest readings and classify the result."""
    score = compute_trend_score(
        readings.rsi, readings.macd.macd, readings.macd.signal
    )
    return TrendSignal(score=score, action=classify_score(score), readings=readings)
