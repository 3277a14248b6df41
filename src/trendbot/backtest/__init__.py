"""Backtest package.

Replays a calendar month of historical candles through the same run loop,
position state machine and ledger used live (Executor ABC swap), then scores
the ledger.
"""

from trendbot.backtest.models import BacktestConfig, BacktestResult, month_range
from trendbot.backtest.runner import run_backtest
from trendbot.backtest.source import BacktestSource

__all__ = [
    "BacktestConfig",
    "BacktestResult",
    "BacktestSource",
    "month_range",
    "run_backtest",
]
