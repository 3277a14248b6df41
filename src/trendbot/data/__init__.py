"""Run state persistence layer.

Provides the SQLite database manager, the checkpoint store, the append-only
transaction ledger, the history candle cache and the paged history fetcher.
"""

from trendbot.data.candles import CandleCache
from trendbot.data.checkpoints import CheckpointStore, backtest_run_key
from trendbot.data.database import TradingDatabase
from trendbot.data.fetcher import HistoricalCandleFetcher
from trendbot.data.ledger import Ledger
from trendbot.data.models import Checkpoint

__all__ = [
    "CandleCache",
    "Checkpoint",
    "CheckpointStore",
    "HistoricalCandleFetcher",
    "Ledger",
    "TradingDatabase",
    "backtest_run_key",
]
