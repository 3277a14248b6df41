"""Live candle feed and the live candle source.

Uses REST polling of the most recent candles. A candle becomes final once
its close time has passed. Both provisional and final candles are pushed
into an asyncio.Queue, so a slow tick buffers later arrivals instead of
dropping or reordering them. The consumer only admits final candles.
"""

import asyncio
import time
from collections.abc import AsyncIterator

from trendbot.data.fetcher import HistoricalCandleFetcher
from trendbot.data.models import Checkpoint
from trendbot.exchange.client import ExchangeClient
from trendbot.exchange.types import candle_from_ohlcv, timeframe_to_ms
from trendbot.logging import get_logger
from trendbot.market_data.source import CandleSource, Tick
from trendbot.market_data.window import RollingWindow
from trendbot.models import Candle

logger = get_logger(__name__)


class LiveCandleFeed:
    """Polls recent candles and publishes them in close-time order.

    Final candles are published once each. The still-open candle is
    published on every poll as a provisional update.
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        symbol: str,
        interval: str,
        poll_interval: float = 5.0,
        queue: asyncio.Queue | None = None,  # type: ignore[type-arg]
    ) -> None:
        self._exchange = exchange
        self._symbol = symbol
        self._interval = interval
        self._tf_ms = timeframe_to_ms(interval)
        self._poll_interval = poll_interval
        self.queue: asyncio.Queue[Candle | None] = (
            queue if queue is not None else asyncio.Queue()
        )
        self._last_final_close: int | None = None
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]

    async def start(self, after_close_time: int | None = None) -> None:
        """Begin polling; final candles closing at or before after_close_time are skipped."""
        if self._running:
            logger.warning("candle_feed_already_running")
            return
        self._last_final_close = after_close_time
        self._running = True
        self._task = asyncio.create_task(self._stream_loop())
        logger.info(
            "candle_feed_started",
            symbol=self._symbol,
            interval=self._interval,
            poll_interval=self._poll_interval,
        )

    async def stop(self) -> None:
        """Stop the feed gracefully."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("candle_feed_stopped", symbol=self._symbol)

    async def _stream_loop(self) -> None:
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("candle_feed_poll_error", exc_info=True)
            if self._running:
                await asyncio.sleep(self._poll_interval)

    async def poll_once(self) -> int:
        """Fetch the latest candles and publish new ones. Returns the count published."""
        rows = await self._exchange.fetch_ohlcv(
            self._symbol, timeframe=self._interval, limit=5
        )
        now_ms = int(time.time() * 1000)
        published = 0

        for row in sorted(rows, key=lambda r: r[0]):
            candle = candle_from_ohlcv(row, self._tf_ms, now_ms)
            if candle.is_final:
                if (
                    self._last_final_close is not None
                    and candle.close_time <= self._last_final_close
                ):
                    continue
                self._last_final_close = candle.close_time
            await self.queue.put(candle)
            published += 1

        logger.debug("candles_published", symbol=self._symbol, count=published)
        return published


class LiveSource(CandleSource):
    """Ticks on every new final candle delivered by the live feed.

    The rolling window is restored from the checkpoint (topped up with
    candles that closed while the bot was down) or seeded from the venue,
    and is snapshotted into every checkpoint.
    """

    finite = False

    def __init__(
        self,
        feed: LiveCandleFeed,
        fetcher: HistoricalCandleFetcher,
        window: RollingWindow,
        symbol: str,
        interval: str,
    ) -> None:
        self._feed = feed
        self._fetcher = fetcher
        self._window = window
        self._symbol = symbol
        self._interval = interval
        self._stopped = False

    @property
    def window(self) -> RollingWindow:
        return self._window

    @property
    def exhausted(self) -> bool:
        return False

    async def prepare(self, checkpoint: Checkpoint | None) -> None:
        if checkpoint is not None and checkpoint.window:
            self._window.restore(checkpoint.window)
            logger.info("window_restored", candles=len(self._window))
            try:
                missed = await self._fetcher.fetch_since(
                    self._symbol, self._interval, self._window.last_close_time
                )
            except Exception:
                logger.warning("window_top_up_failed", exc_info=True)
                missed = []
            added = sum(1 for candle in missed if self._window.append(candle))
            if added:
                logger.info("window_topped_up", candles=added)
        else:
            try:
                seed = await self._fetcher.fetch_recent(
                    self._symbol, self._interval, self._window.capacity
                )
            except Exception:
                logger.warning("window_seed_failed", exc_info=True)
                seed = []
            self._window.restore(seed)
            logger.info("window_seeded", candles=len(self._window))

        await self._feed.start(after_close_time=self._window.last_close_time)

    async def ticks(self) -> AsyncIterator[Tick]:
        while not self._stopped:
            candle = await self._feed.queue.get()
            if self._stopped or candle is None:
                return
            if not self._window.append(candle):
                continue
            yield Tick(
                cursor=candle.close_time,
                candle=candle,
                closes=self._window.closes(),
            )

    def checkpoint_due(self, tick: Tick, transacted: bool) -> bool:
        return True

    def stop(self) -> None:
        self._stopped = True
        self._feed.queue.put_nowait(None)

    def window_snapshot(self) -> list[Candle] | None:
        return self._window.snapshot()

    async def close(self) -> None:
        await self._feed.stop()
