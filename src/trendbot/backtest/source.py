"""Historical replay source for backtests.

Candle i is traded at its close using indicators computed over the closes
of candles 0..i-1. Iteration starts at the warm-up index on a fresh run, or
right after the checkpointed index on a resume.
"""

from collections.abc import AsyncIterator

from trendbot.backtest.models import BacktestConfig
from trendbot.config import BacktestSettings
from trendbot.data.fetcher import HistoricalCandleFetcher
from trendbot.data.models import Checkpoint
from trendbot.logging import get_logger
from trendbot.market_data.source import CandleSource, Tick
from trendbot.models import Candle

logger = get_logger(__name__)


class BacktestSource(CandleSource):
    """Replays one month of candles fetched (or loaded from cache) up front."""

    finite = True

    def __init__(
        self,
        fetcher: HistoricalCandleFetcher,
        config: BacktestConfig,
        settings: BacktestSettings | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._config = config
        self._settings = settings or BacktestSettings()
        self._candles: list[Candle] = []
        self._start_index = self._settings.warmup_index
        self._stopped = False
        self._exhausted = False

    @property
    def candles(self) -> list[Candle]:
        return self._candles

    @property
    def start_index(self) -> int:
        return self._start_index

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    async def prepare(self, checkpoint: Checkpoint | None) -> None:
        start_ms, end_ms = self._config.range_ms
        self._candles = await self._fetcher.fetch_history(
            self._config.symbol, self._config.interval, start_ms, end_ms
        )

        warmup = self._settings.warmup_index
        if checkpoint is not None:
            self._start_index = max(warmup, checkpoint.cursor + 1)
            logger.info(
                "backtest_resuming",
                run_key=self._config.run_key,
                start_index=self._start_index,
                candles=len(self._candles),
            )
        else:
            self._start_index = warmup
            logger.info(
                "backtest_starting",
                run_key=self._config.run_key,
                start_index=self._start_index,
                candles=len(self._candles),
            )

    async def ticks(self) -> AsyncIterator[Tick]:
        closes = [c.close for c in self._candles]
        total = len(self._candles)
        progress_every = self._settings.progress_every

        for i in range(self._start_index, total):
            if self._stopped:
                return
            if progress_every > 0 and i % progress_every == 0:
                logger.info(
                    "backtest_progress",
                    index=i,
                    total=total,
                    percent=round(i * 100 / total, 1),
                )
            yield Tick(cursor=i, candle=self._candles[i], closes=closes[:i])

        self._exhausted = True

    def checkpoint_due(self, tick: Tick, transacted: bool) -> bool:
        return transacted or tick.cursor % self._settings.checkpoint_every == 0

    def stop(self) -> None:
        self._stopped = True
