"""Tests for the indicator adapter (EMA, RSI, MACD).

Verifies:
- SMA-seeded EMA values and output length
- Wilder RSI on hand-computed sequences, bounds and rounding
- MACD output length, zero line on flat prices, sign on trends
- InsufficientData on short inputs
- Purity (same input, same output)
"""

from decimal import Decimal

import pytest

from trendbot.config import IndicatorSettings
from trendbot.exceptions import InsufficientData
from trendbot.signals.indicators import (
    compute_ema,
    compute_macd,
    compute_rsi,
    latest_readings,
)


def _d(values: list[float | int | str]) -> list[Decimal]:
    return [Decimal(str(v)) for v in values]


class TestEMA:
    def test_sma_seed_then_smoothing(self) -> None:
        """Period 3 gives alpha 0.5: seed 2, then 3, then 4."""
        result = compute_ema(_d([1, 2, 3, 4, 5]), 3)
        assert result == [Decimal("2"), Decimal("3"), Decimal("4")]

    def test_output_length(self) -> None:
        result = compute_ema(_d(range(1, 31)), 12)
        assert len(result) == 30 - 12 + 1

    def test_exact_period_returns_seed_only(self) -> None:
        result = compute_ema(_d([2, 4, 6]), 3)
        assert result == [Decimal("4")]

    def test_too_short_raises(self) -> None:
        with pytest.raises(InsufficientData):
            compute_ema(_d([1, 2]), 3)


class TestRSI:
    def test_hand_computed_values(self) -> None:
        """Period 2 over 10, 11, 10, 11.

        First window: avg gain 0.5, avg loss 0.5 -> RS 1 -> 50.
        Next: avg gain (0.5 + 1) / 2 = 0.75, avg loss 0.25 -> RS 3 -> 75.
        """
        result = compute_rsi(_d([10, 11, 10, 11]), 2)
        assert result == [Decimal("50.00"), Decimal("75.00")]

    def test_output_length_is_input_minus_period(self) -> None:
        closes = _d([100 + (i % 5) for i in range(30)])
        assert len(compute_rsi(closes, 14)) == 30 - 14

    def test_only_gains_reads_100(self) -> None:
        result = compute_rsi(_d(range(1, 20)), 14)
        assert all(v == Decimal("100") for v in result)

    def test_only_losses_reads_0(self) -> None:
        result = compute_rsi(_d(range(20, 1, -1)), 14)
        assert all(v == Decimal("0") for v in result)

    def test_values_bounded_and_two_decimals(self) -> None:
        closes = _d([100, 102, 101, 105, 103, 99, 98, 104, 107, 106, 101, 100, 103, 108, 110, 104, 102])
        result = compute_rsi(closes, 14)
        for value in result:
            assert Decimal("0") <= value <= Decimal("100")
            assert value == value.quantize(Decimal("0.01"))

    def test_needs_period_plus_one_closes(self) -> None:
        with pytest.raises(InsufficientData):
            compute_rsi(_d(range(14)), 14)
        assert len(compute_rsi(_d(range(15)), 14)) == 1

    def test_pure(self) -> None:
        closes = _d([100, 101, 99, 98, 102, 103, 101, 100, 99, 104, 105, 103, 102, 101, 100, 99])
        assert compute_rsi(closes, 14) == compute_rsi(closes, 14)


class TestMACD:
    def test_output_length(self) -> None:
        closes = _d([100 + i for i in range(40)])
        assert len(compute_macd(closes)) == 40 - 26 - 9 + 2

    def test_minimum_length(self) -> None:
        with pytest.raises(InsufficientData):
            compute_macd(_d([100] * 33))
        assert len(compute_macd(_d([100] * 34))) == 1

    def test_flat_prices_give_zero_lines(self) -> None:
        point = compute_macd(_d([100] * 50))[-1]
        assert point.macd == 0
        assert point.signal == 0
        assert point.histogram == 0

    def test_rising_prices_give_positive_macd(self) -> None:
        point = compute_macd(_d([100 + i for i in range(60)]))[-1]
        assert point.macd > 0

    def test_falling_prices_give_negative_macd(self) -> None:
        point = compute_macd(_d([200 - i for i in range(60)]))[-1]
        assert point.macd < 0

    def test_histogram_is_macd_minus_signal(self) -> None:
        closes = _d([100 + (i % 7) * 2 - (i % 3) for i in range(60)])
        for point in compute_macd(closes):
            assert point.histogram == point.macd - point.signal

    def test_fast_must_be_below_slow(self) -> None:
        with pytest.raises(ValueError):
            compute_macd(_d([100] * 60), fast_period=26, slow_period=12)


class TestLatestReadings:
    def test_returns_last_values(self) -> None:
        closes = _d([100 + (i % 6) for i in range(50)])
        settings = IndicatorSettings()
        readings = latest_readings(closes, settings)

        assert readings.rsi == compute_rsi(closes, 14)[-1]
        assert readings.macd == compute_macd(closes)[-1]

    def test_short_input_raises(self) -> None:
        with pytest.raises(InsufficientData):
            latest_readings(_d([100] * 20), IndicatorSettings())
