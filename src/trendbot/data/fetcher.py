"""Paged historical candle fetch with retry and a local cache.

Walks FORWARD through the requested range in pages of up to page_size
candles, advancing the start to the last returned close time + 1 until the
range is exhausted or a page comes back empty (DataGap). Fully fetched closed
ranges are cached so they are never refetched.
"""

import asyncio
import time
from collections.abc import Callable

import ccxt.async_support

from trendbot.config import HistoricalDataSettings
from trendbot.data.candles import CandleCache
from trendbot.exceptions import DataGap, PersistenceFailure
from trendbot.exchange.client import ExchangeClient
from trendbot.exchange.types import candle_from_ohlcv, timeframe_to_ms
from trendbot.logging import get_logger
from trendbot.models import Candle

logger = get_logger(__name__)


class HistoricalCandleFetcher:
    """Fetches ordered final candles for a historical range.

    Usage:
        fetcher = HistoricalCandleFetcher(exchange, cache, settings)
        candles = await fetcher.fetch_history("BTC/USDT", "5m", start_ms, end_ms)
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        cache: CandleCache | None,
        settings: HistoricalDataSettings,
    ) -> None:
        self._exchange = exchange
        self._cache = cache
        self._settings = settings

    async def fetch_history(
        self, symbol: str, interval: str, start_ms: int, end_ms: int
    ) -> list[Candle]:
        """Return the final candles opening within [start_ms, end_ms], oldest first.

        Served from the cache when the range was fully fetched before.
        """
        tf_ms = timeframe_to_ms(interval)
        first_close = start_ms + tf_ms - 1
        last_close = end_ms + tf_ms - 1

        if self._cache is not None and await self._cache.is_range_complete(
            symbol, interval, start_ms, end_ms
        ):
            candles = await self._cache.get_candles(symbol, interval, first_close, last_close)
            logger.info(
                "history_loaded_from_cache",
                symbol=symbol,
                interval=interval,
                candles=len(candles),
            )
            return candles

        started = time.monotonic()
        candles = await self._fetch_paginated(symbol, interval, start_ms, end_ms, tf_ms)

        if self._cache is not None:
            try:
                await self._cache.insert_candles(symbol, interval, candles)
                now_ms = int(time.time() * 1000)
                if last_close < now_ms:
                    await self._cache.mark_range_complete(
                        symbol, interval, start_ms, end_ms, len(candles)
                    )
            except PersistenceFailure as exc:
                logger.warning(
                    "candle_cache_write_failed", symbol=symbol, error=str(exc)
                )

        logger.info(
            "history_ready",
            symbol=symbol,
            interval=interval,
            candles=len(candles),
            duration_seconds=round(time.monotonic() - started, 1),
        )
        return candles

    async def fetch_recent(self, symbol: str, interval: str, limit: int) -> list[Candle]:
        """Return up to ``limit`` of the most recent final candles, oldest first."""
        tf_ms = timeframe_to_ms(interval)
        rows = await self._fetch_with_retry(
            self._exchange.fetch_ohlcv, symbol, timeframe=interval, limit=limit + 1
        )
        now_ms = int(time.time() * 1000)
        candles = [candle_from_ohlcv(row, tf_ms, now_ms) for row in rows]
        final = [c for c in candles if c.is_final]
        return final[-limit:]

    async def fetch_since(self, symbol: str, interval: str, since_close_ms: int) -> list[Candle]:
        """Return final candles closing after since_close_ms, oldest first."""
        tf_ms = timeframe_to_ms(interval)
        now_ms = int(time.time() * 1000)
        candles = await self._fetch_paginated(
            symbol, interval, since_close_ms + 1, now_ms, tf_ms
        )
        return [c for c in candles if c.close_time > since_close_ms]

    async def _fetch_paginated(
        self, symbol: str, interval: str, start_ms: int, end_ms: int, tf_ms: int
    ) -> list[Candle]:
        candles: list[Candle] = []
        start = start_ms

        while start < end_ms:
            try:
                page = await self._fetch_page(symbol, interval, start, end_ms, tf_ms)
            except DataGap as exc:
                logger.info("history_fetch_stopped", symbol=symbol, reason=str(exc))
                break

            final = [c for c in page if c.is_final]
            candles.extend(final)
            logger.info(
                "history_page_fetched",
                symbol=symbol,
                fetched=len(page),
                total=len(candles),
            )

            next_start = page[-1].close_time + 1
            if next_start <= start or len(final) < len(page):
                break  # No progress, or reached the still-open candle
            start = next_start

            # Rate limit safety delay between paginated calls
            await asyncio.sleep(self._settings.fetch_batch_delay)

        return candles

    async def _fetch_page(
        self, symbol: str, interval: str, start: int, end_ms: int, tf_ms: int
    ) -> list[Candle]:
        """Fetch one page of candles opening in [start, end_ms].

        Raises:
            DataGap: If the venue returns no candles for the window.
        """
        rows = await self._fetch_with_retry(
            self._exchange.fetch_ohlcv,
            symbol,
            timeframe=interval,
            since=start,
            limit=self._settings.page_size,
            params={"until": end_ms},
        )
        rows = [row for row in rows if start <= row[0] <= end_ms]
        if not rows:
            raise DataGap(f"No candles for {symbol} {interval} from {start} to {end_ms}")

        now_ms = int(time.time() * 1000)
        return [candle_from_ohlcv(row, tf_ms, now_ms) for row in rows]

    async def _fetch_with_retry(self, fetch_fn: Callable, *args, **kwargs) -> list:
        """Execute a fetch function with exponential backoff retry.

        Retries up to max_retries times with delays: 1s, 2s, 4s, 8s, 16s.
        Handles ccxt rate limit errors with a longer delay multiplier.
        Re-raises on final failure.
        """
        max_retries = self._settings.max_retries
        base_delay = self._settings.retry_base_delay

        for attempt in range(max_retries):
            try:
                return await fetch_fn(*args, **kwargs)
            except Exception as e:
                if attempt == max_retries - 1:
                    logger.error(
                        "fetch_failed_permanently",
                        error=str(e),
                        attempts=max_retries,
                    )
                    raise

                delay = base_delay * (2**attempt)

                # Rate limit errors get a longer delay
                if isinstance(e, ccxt.async_support.RateLimitExceeded):
                    delay *= 3
                    logger.warning(
                        "rate_limit_exceeded",
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                    )
                else:
                    logger.warning(
                        "fetch_retry",
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                        error=str(e),
                    )

                await asyncio.sleep(delay)

        return []  # Unreachable, but satisfies type checker
