"""Cache of fetched history candles.

A backtest month is fetched once and replayed from here afterwards, so a
resumed run evaluates exactly the same candles as the interrupted one.

CRITICAL: All monetary values stored as TEXT in SQLite, restored as Decimal on read.
"""

import time
from decimal import Decimal

from trendbot.data.database import TradingDatabase
from trendbot.exceptions import PersistenceFailure
from trendbot.logging import get_logger
from trendbot.models import Candle

logger = get_logger(__name__)


class CandleCache:
    """Typed access to the candles and fetch_state tables.

    Usage:
        async with TradingDatabase("data/trendbot.db") as database:
            cache = CandleCache(database)
            candles = await cache.get_candles("BTC/USDT", "5m", start_ms, end_ms)
    """

    def __init__(self, database: TradingDatabase) -> None:
        self._database = database

    async def insert_candles(
        self, symbol: str, interval: str, candles: list[Candle]
    ) -> int:
        """Insert final candles, ignoring ones already cached.

        Returns the number of actually inserted rows.
        """
        if not candles:
            return 0

        data = [
            (
                symbol,
                interval,
                c.close_time,
                str(c.open),
                str(c.high),
                str(c.low),
                str(c.close),
                str(c.volume),
            )
            for c in candles
            if c.is_final
        ]

        try:
            cursor = await self._database.db.executemany(
                "INSERT OR IGNORE INTO candles "
                "(symbol, interval, close_time, open, high, low, close, volume) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                data,
            )
            await self._database.db.commit()
        except Exception as exc:
            raise PersistenceFailure(f"Failed to cache candles for {symbol}: {exc}") from exc

        inserted = cursor.rowcount
        logger.debug(
            "inserted_candles",
            symbol=symbol,
            interval=interval,
            total=len(candles),
            inserted=inserted,
        )
        return inserted

    async def get_candles(
        self,
        symbol: str,
        interval: str,
        first_close_ms: int,
        last_close_ms: int,
    ) -> list[Candle]:
        """Return cached candles whose close time is in the inclusive range, oldest first."""
        cursor = await self._database.db.execute(
            "SELECT close_time, open, high, low, close, volume FROM candles "
            "WHERE symbol = ? AND interval = ? AND close_time >= ? AND close_time <= ? "
            "ORDER BY close_time ASC",
            (symbol, interval, first_close_ms, last_close_ms),
        )
        rows = await cursor.fetchall()
        return [
            Candle(
                open=Decimal(row[1]),
                high=Decimal(row[2]),
                low=Decimal(row[3]),
                close=Decimal(row[4]),
                volume=Decimal(row[5]),
                close_time=row[0],
            )
            for row in rows
        ]

    async def mark_range_complete(
        self, symbol: str, interval: str, start_ms: int, end_ms: int, candle_count: int
    ) -> None:
        """Record that a closed historical range has been fully fetched."""
        now_ms = int(time.time() * 1000)
        try:
            await self._database.db.execute(
                "INSERT OR REPLACE INTO fetch_state "
                "(symbol, interval, start_ms, end_ms, candle_count, last_fetched_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (symbol, interval, start_ms, end_ms, candle_count, now_ms),
            )
            await self._database.db.commit()
        except Exception as exc:
            raise PersistenceFailure(
                f"Failed to mark {symbol} {interval} range complete: {exc}"
            ) from exc

    async def is_range_complete(
        self, symbol: str, interval: str, start_ms: int, end_ms: int
    ) -> bool:
        cursor = await self._database.db.execute(
            "SELECT 1 FROM fetch_state "
            "WHERE symbol = ? AND interval = ? AND start_ms = ? AND end_ms = ?",
            (symbol, interval, start_ms, end_ms),
        )
        return await cursor.fetchone() is not None
