"""Data models for month-long backtests.

A backtest replays one calendar month (UTC) of candles for one instrument
and interval. Its run key identifies both the checkpoint and the ledger scope.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime, timezone

from trendbot.data.checkpoints import backtest_run_key
from trendbot.pnl.scorer import ScoreReport


def month_range(year: int, month: int) -> tuple[int, int]:
    """Return (start_ms, end_ms) for a calendar month in UTC.

    start is the first millisecond of the month, end is 23:59:59 of its
    last day (candles opening in that final second are still included).
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, tzinfo=timezone.utc)
    return int(start.timestamp() * 1000), int(end.timestamp() * 1000)


@dataclass(frozen=True)
class BacktestConfig:
    """Which month of which market to replay."""

    symbol: str  # e.g., "BTC/USDT"
    interval: str  # ccxt timeframe, e.g. "5m"
    year: int
    month: int

    @property
    def run_key(self) -> str:
        return backtest_run_key(self.symbol, self.interval, self.year, self.month)

    @property
    def range_ms(self) -> tuple[int, int]:
        return month_range(self.year, self.month)


@dataclass(frozen=True)
class BacktestResult:
    """Outcome of run_backtest.

    completed is False when the run was stopped before the last candle;
    the report then scores the ledger as it stands.
    already_completed marks a result served from a completed checkpoint.
    """

    run_key: str
    report: ScoreReport
    completed: bool
    candles: int
    ticks_processed: int
    resumed_from: int | None = None
    already_completed: bool = False
