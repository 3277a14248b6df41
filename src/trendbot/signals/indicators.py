"""RSI and MACD computation over a closing-price sequence.

Pure functions: the same input always yields the same output and nothing is
cached between calls. Numeric conventions follow the classic definitions:

- EMA is seeded with the simple average of its first ``period`` inputs, then
  EMA_t = alpha * value_t + (1 - alpha) * EMA_{t-1} with alpha = 2 / (period + 1).
- RSI uses Wilder smoothing of average gain/loss and is rounded to 2 places.
- MACD is fast EMA minus slow EMA; its signal line is an EMA of the MACD line.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from trendbot.config import IndicatorSettings
from trendbot.exceptions import InsufficientData
from trendbot.signals.models import IndicatorReadings, MACDPoint

#: Precision limit for EMA/average intermediate results (12 decimal places).
#: Prevents Decimal division from producing arbitrarily long representations.
_QUANTIZE = Decimal("0.000000000001")

_RSI_QUANTIZE = Decimal("0.01")
_HUNDRED = Decimal("100")


def compute_ema(values: Sequence[Decimal], period: int) -> list[Decimal]:
    """Compute an SMA-seeded Exponential Moving Average.

    Args:
        values: Ordered values (oldest first).
        period: EMA period.

    Returns:
        EMA values aligned to the end of the input: ``len(values) - period + 1``
        entries, the first being the simple average of the first ``period``.

    Raises:
        InsufficientData: If fewer than ``period`` values are given.
    """
    if period <= 0:
        raise ValueError(f"EMA period must be positive, got {period}")
    if len(values) < period:
        raise InsufficientData(f"EMA({period}) needs {period} values, got {len(values)}")

    alpha = Decimal("2") / (Decimal(period) + Decimal("1"))
    one_minus_alpha = Decimal("1") - alpha

    seed = (sum(values[:period], Decimal("0")) / Decimal(period)).quantize(_QUANTIZE)
    ema = [seed]
    for v in values[period:]:
        ema.append((alpha * v + one_minus_alpha * ema[-1]).quantize(_QUANTIZE))
    return ema


def compute_rsi(closes: Sequence[Decimal], period: int = 14) -> list[Decimal]:
    """Compute Wilder's Relative Strength Index.

    Output has ``len(closes) - period`` values in [0, 100]. A window with no
    losses reads 100, one with no gains reads 0.

    Raises:
        InsufficientData: If fewer than ``period + 1`` closes are given.
    """
    if period <= 0:
        raise ValueError(f"RSI period must be positive, got {period}")
    if len(closes) < period + 1:
        raise InsufficientData(
            f"RSI({period}) needs {period + 1} closes, got {len(closes)}"
        )

    gains: list[Decimal] = []
    losses: list[Decimal] = []
    for prev, curr in zip(closes, closes[1:]):
        change = curr - prev
        gains.append(max(change, Decimal("0")))
        losses.append(max(-change, Decimal("0")))

    p = Decimal(period)
    avg_gain = (sum(gains[:period], Decimal("0")) / p).quantize(_QUANTIZE)
    avg_loss = (sum(losses[:period], Decimal("0")) / p).quantize(_QUANTIZE)
    result = [_rsi_value(avg_gain, avg_loss)]

    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = ((avg_gain * (p - 1) + gain) / p).quantize(_QUANTIZE)
        avg_loss = ((avg_loss * (p - 1) + loss) / p).quantize(_QUANTIZE)
        result.append(_rsi_value(avg_gain, avg_loss))

    return result


def _rsi_value(avg_gain: Decimal, avg_loss: Decimal) -> Decimal:
    if avg_loss == 0:
        return _HUNDRED.quantize(_RSI_QUANTIZE)
    if avg_gain == 0:
        return Decimal("0").quantize(_RSI_QUANTIZE)
    rs = avg_gain / avg_loss
    rsi = _HUNDRED - _HUNDRED / (Decimal("1") + rs)
    return rsi.quantize(_RSI_QUANTIZE, rounding=ROUND_HALF_UP)


def compute_macd(
    closes: Sequence[Decimal],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> list[MACDPoint]:
    """Compute MACD line, signal line and histogram.

    Only fully formed points (signal line available) are returned:
    ``len(closes) - slow_period - signal_period + 2`` entries.

    Raises:
        InsufficientData: If fewer than ``slow_period + signal_period - 1``
            closes are given.
    """
    if fast_period >= slow_period:
        raise ValueError(
            f"MACD fast period ({fast_period}) must be below slow period ({slow_period})"
        )
    required = slow_period + signal_period - 1
    if len(closes) < required:
        raise InsufficientData(
            f"MACD({fast_period},{slow_period},{signal_period}) needs "
            f"{required} closes, got {len(closes)}"
        )

    fast = compute_ema(closes, fast_period)
    slow = compute_ema(closes, slow_period)

    # fast starts fast_period-1 into the input, slow starts slow_period-1 in
    offset = slow_period - fast_period
    macd_line = [f - s for f, s in zip(fast[offset:], slow)]

    signal_line = compute_ema(macd_line, signal_period)
    aligned_macd = macd_line[signal_period - 1 :]

    return [
        MACDPoint(macd=m, signal=s, histogram=m - s)
        for m, s in zip(aligned_macd, signal_line)
    ]


def latest_readings(
    closes: Sequence[Decimal], settings: IndicatorSettings
) -> IndicatorReadings:
    """Compute RSI and MACD over closes and return only the latest values.

    Raises:
        InsufficientData: If either indicator cannot produce a value.
    """
    rsi = compute_rsi(closes, settings.rsi_period)
    macd = compute_macd(
        closes,
        fast_period=settings.macd_fast,
        slow_period=settings.macd_slow,
        signal_period=settings.macd_signal,
    )
    return IndicatorReadings(rsi=rsi[-1], macd=macd[-1])
