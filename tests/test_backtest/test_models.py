"""Tests for backtest month ranges and run keys."""

import pytest

from trendbot.backtest.models import BacktestConfig, month_range


def test_month_range_leap_february() -> None:
    assert month_range(2024, 2) == (1_706_745_600_000, 1_709_251_199_000)


def test_month_range_january() -> None:
    start, end = month_range(2025, 1)
    assert start == 1_735_689_600_000
    assert end == 1_738_367_999_000


def test_month_range_december_rolls_year() -> None:
    start, end = month_range(2023, 12)
    assert start == 1_701_388_800_000
    assert end == 1_704_067_199_000


@pytest.mark.parametrize("month", [0, 13])
def test_month_range_rejects_invalid_month(month: int) -> None:
    with pytest.raises(ValueError):
        month_range(2024, month)


def test_config_run_key_and_range() -> None:
    config = BacktestConfig(symbol="BTC/USDT", interval="5m", year=2024, month=2)
    assert config.run_key == "BTC/USDT:5m:2024-02"
    assert config.range_ms == month_range(2024, 2)
