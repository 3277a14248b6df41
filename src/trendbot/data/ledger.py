"""Append-only transaction ledger.

Every entry is keyed by (run_key, tick, seq): the tick that produced it and
its position within that tick (a flip writes seq 0 for the close and seq 1
for the open). Replaying a tick after a restart therefore cannot duplicate
entries. Rows are never updated.

CRITICAL: All monetary values stored as TEXT in SQLite, restored as Decimal on read.
"""

from decimal import Decimal

from trendbot.data.database import TradingDatabase
from trendbot.exceptions import PersistenceFailure
from trendbot.logging import get_logger
from trendbot.models import OrderSide, Transaction

logger = get_logger(__name__)


class Ledger:
    """Typed access to the transactions table.

    Args:
        database: Connected TradingDatabase.
        run_key: Run the appended entries belong to.
        symbol: Instrument, stored for scoped queries.
        interval: Candle interval, stored for scoped queries.
        year: Backtest year (None for live runs).
        month: Backtest month (None for live runs).
    """

    def __init__(
        self,
        database: TradingDatabase,
        run_key: str,
        symbol: str,
        interval: str,
        year: int | None = None,
        month: int | None = None,
    ) -> None:
        self._database = database
        self._run_key = run_key
        self._symbol = symbol
        self._interval = interval
        self._year = year
        self._month = month

    async def append(self, tick: int, transactions: list[Transaction]) -> int:
        """Persist the transactions produced by one tick, in order.

        Returns the number of rows actually inserted (already-ledgered
        entries of a replayed tick are ignored).

        Raises:
            PersistenceFailure: If the write does not reach the database.
        """
        if not transactions:
            return 0

        data = [
            (
                self._run_key,
                tick,
                seq,
                self._symbol,
                self._interval,
                self._year,
                self._month,
                tx.side.value,
                str(tx.price),
                str(tx.quantity),
                str(tx.notional),
                tx.order_id,
                tx.timestamp_ms,
                str(tx.profit) if tx.profit is not None else None,
                int(tx.is_closing),
            )
            for seq, tx in enumerate(transactions)
        ]

        try:
            cursor = await self._database.db.executemany(
                "INSERT OR IGNORE INTO transactions "
                "(run_key, tick, seq, symbol, interval, year, month, side, price, "
                "quantity, notional, order_id, timestamp_ms, profit, is_closing) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                data,
            )
            await self._database.db.commit()
        except Exception as exc:
            raise PersistenceFailure(
                f"Failed to append {len(transactions)} transactions at tick {tick}: {exc}"
            ) from exc

        inserted = cursor.rowcount
        for tx in transactions:
            logger.info(
                "transaction_recorded",
                tick=tick,
                side=tx.side.value,
                price=str(tx.price),
                quantity=str(tx.quantity),
                is_closing=tx.is_closing,
                profit=str(tx.profit) if tx.profit is not None else None,
            )
        if inserted < len(transactions):
            logger.info(
                "replayed_transactions_ignored",
                tick=tick,
                ignored=len(transactions) - inserted,
            )
        return inserted

    async def query(
        self,
        symbol: str | None = None,
        interval: str | None = None,
        year: int | None = None,
        month: int | None = None,
    ) -> list[Transaction]:
        """Return transactions for a (symbol, interval, [year, month]) scope.

        Defaults to this ledger's own scope. Without a year and month the scope
        is this live run only: rows with no backtest month and this ledger's
        run key. Ordered by timestamp ascending, then by tick and seq so a flip
        keeps its close-then-open order.
        """
        symbol = symbol or self._symbol
        interval = interval or self._interval
        if year is None and month is None:
            year, month = self._year, self._month
        live_scope = year is None and month is None

        sql = (
            "SELECT side, price, quantity, notional, order_id, timestamp_ms, "
            "profit, is_closing FROM transactions "
            "WHERE symbol = ? AND interval = ?"
        )
        params: list = [symbol, interval]
        if live_scope:
            sql += " AND year IS NULL AND month IS NULL AND run_key = ?"
            params.append(self._run_key)
        if year is not None:
            sql += " AND year = ?"
            params.append(year)
        if month is not None:
            sql += " AND month = ?"
            params.append(month)
        sql += " ORDER BY timestamp_ms ASC, tick ASC, seq ASC"

        cursor = await self._database.db.execute(sql, params)
        rows = await cursor.fetchall()

        return [
            Transaction(
                side=OrderSide(row[0]),
                price=Decimal(row[1]),
                quantity=Decimal(row[2]),
                notional=Decimal(row[3]),
                order_id=row[4],
                timestamp_ms=row[5],
                profit=Decimal(row[6]) if row[6] is not None else None,
                is_closing=bool(row[7]),
            )
            for row in rows
        ]
