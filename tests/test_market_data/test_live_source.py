"""Tests for LiveCandleFeed and LiveSource.

Verifies:
- poll_once publishes each final candle once and provisional updates every poll
- Window seeded from recent history on a fresh start
- Window restored from checkpoint and topped up with missed candles
- Only admitted final candles produce ticks, in close-time order
- stop() ends iteration without waiting for another candle
"""

import asyncio
import time
from collections.abc import Callable
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from trendbot.data.fetcher import HistoricalCandleFetcher
from trendbot.data.models import Checkpoint
from trendbot.exchange.client import ExchangeClient
from trendbot.market_data.feed import LiveCandleFeed, LiveSource
from trendbot.market_data.window import RollingWindow
from trendbot.models import Candle

FIVE_MIN = 300_000


def _make_source(
    fetcher: AsyncMock, window: RollingWindow
) -> tuple[LiveSource, MagicMock]:
    feed = MagicMock(spec=LiveCandleFeed)
    feed.queue = asyncio.Queue()
    feed.start = AsyncMock()
    feed.stop = AsyncMock()
    source = LiveSource(feed, fetcher, window, "BTC/USDT", "5m")
    return source, feed


@pytest.fixture
def fetcher() -> AsyncMock:
    fetcher = AsyncMock(spec=HistoricalCandleFetcher)
    fetcher.fetch_recent.return_value = []
    fetcher.fetch_since.return_value = []
    return fetcher


@pytest.mark.asyncio
async def test_poll_once_dedupes_final_candles() -> None:
    exchange = AsyncMock(spec=ExchangeClient)
    now = int(time.time() * 1000)
    current_open = now - (now % FIVE_MIN)
    exchange.fetch_ohlcv.return_value = [
        [current_open, 3, 3, 3, 3, 1],  # still open
        [current_open - 2 * FIVE_MIN, 1, 1, 1, 1, 1],
        [current_open - FIVE_MIN, 2, 2, 2, 2, 1],
    ]
    feed = LiveCandleFeed(exchange, "BTC/USDT", "5m")

    assert await feed.poll_once() == 3
    published = [feed.queue.get_nowait() for _ in range(3)]
    assert [c.close for c in published] == [Decimal("1"), Decimal("2"), Decimal("3")]
    assert [c.is_final for c in published] == [True, True, False]

    # Second poll: only the provisional candle is republished
    assert await feed.poll_once() == 1
    again = feed.queue.get_nowait()
    assert again.is_final is False
    assert feed.queue.empty()


@pytest.mark.asyncio
async def test_prepare_seeds_window_on_fresh_start(
    fetcher: AsyncMock, make_candle: Callable[..., Candle]
) -> None:
    fetcher.fetch_recent.return_value = [make_candle(t * 1000) for t in (1, 2, 3)]
    window = RollingWindow(capacity=10)
    source, feed = _make_source(fetcher, window)

    await source.prepare(None)

    fetcher.fetch_recent.assert_awaited_once_with("BTC/USDT", "5m", 10)
    assert len(window) == 3
    feed.start.assert_awaited_once_with(after_close_time=3000)


@pytest.mark.asyncio
async def test_prepare_restores_and_tops_up(
    fetcher: AsyncMock, make_candle: Callable[..., Candle]
) -> None:
    fetcher.fetch_since.return_value = [make_candle(3000), make_candle(4000)]
    window = RollingWindow(capacity=10)
    source, feed = _make_source(fetcher, window)
    checkpoint = Checkpoint(
        run_key="main",
        symbol="BTC/USDT",
        interval="5m",
        cursor=2000,
        window=[make_candle(1000), make_candle(2000)],
        updated_at=1,
    )

    await source.prepare(checkpoint)

    fetcher.fetch_recent.assert_not_called()
    fetcher.fetch_since.assert_awaited_once_with("BTC/USDT", "5m", 2000)
    assert [c.close_time for c in window.snapshot()] == [1000, 2000, 3000, 4000]
    feed.start.assert_awaited_once_with(after_close_time=4000)


@pytest.mark.asyncio
async def test_prepare_survives_seed_failure(fetcher: AsyncMock) -> None:
    fetcher.fetch_recent.side_effect = RuntimeError("venue down")
    window = RollingWindow(capacity=10)
    source, feed = _make_source(fetcher, window)

    await source.prepare(None)

    assert len(window) == 0
    feed.start.assert_awaited_once_with(after_close_time=None)


@pytest.mark.asyncio
async def test_ticks_only_for_admitted_candles(
    fetcher: AsyncMock, make_candle: Callable[..., Candle]
) -> None:
    window = RollingWindow(capacity=10)
    source, feed = _make_source(fetcher, window)
    await source.prepare(None)

    for candle in (
        make_candle(1000, close="1"),
        make_candle(2000, close="2", is_final=False),
        make_candle(2000, close="2"),
        make_candle(1500, close="9"),  # stale
        make_candle(3000, close="3"),
    ):
        feed.queue.put_nowait(candle)

    ticks = []
    async for tick in source.ticks():
        ticks.append(tick)
        if len(ticks) == 3:
            source.stop()

    assert [t.cursor for t in ticks] == [1000, 2000, 3000]
    assert ticks[-1].closes == [Decimal("1"), Decimal("2"), Decimal("3")]
    assert source.checkpoint_due(ticks[0], transacted=False) is True
    assert source.exhausted is False


@pytest.mark.asyncio
async def test_stop_unblocks_waiting_iteration(fetcher: AsyncMock) -> None:
    source, _ = _make_source(fetcher, RollingWindow(capacity=10))

    async def consume() -> int:
        count = 0
        async for _ in source.ticks():
            count += 1
        return count

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    source.stop()

    assert await asyncio.wait_for(task, timeout=1.0) == 0


@pytest.mark.asyncio
async def test_close_stops_feed(fetcher: AsyncMock) -> None:
    source, feed = _make_source(fetcher, RollingWindow(capacity=10))
    await source.close()
    feed.stop.assert_awaited_once()
