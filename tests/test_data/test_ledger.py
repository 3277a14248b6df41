"""Tests for the append-only transaction Ledger.

Verifies:
- Decimal values survive storage as TEXT
- Replaying a tick never duplicates entries
- Query order is timestamp, then tick, then seq (close before open)
- Queries are scoped by symbol, interval and month
- A live ledger sees only its own run, never backtest months
"""

from decimal import Decimal

import pytest

from trendbot.data.database import TradingDatabase
from trendbot.data.ledger import Ledger
from trendbot.models import OrderSide, Transaction


def _tx(side: OrderSide, price: str, ts: int, closing: bool = False) -> Transaction:
    quantity = Decimal("0.5")
    return Transaction(
        side=side,
        price=Decimal(price),
        quantity=quantity,
        notional=quantity * Decimal(price),
        order_id=f"paper_{ts}_{side.value}",
        timestamp_ms=ts,
        profit=Decimal("1.25") if closing else None,
        is_closing=closing,
    )


@pytest.fixture
def ledger(database: TradingDatabase) -> Ledger:
    return Ledger(database, "BTC/USDT:5m:2024-02", "BTC/USDT", "5m", 2024, 2)


@pytest.mark.asyncio
async def test_append_and_query(ledger: Ledger) -> None:
    opening = _tx(OrderSide.BUY, "42000.12345678", 1000)

    assert await ledger.append(50, [opening]) == 1
    assert await ledger.query() == [opening]


@pytest.mark.asyncio
async def test_empty_append_is_noop(ledger: Ledger) -> None:
    assert await ledger.append(50, []) == 0
    assert await ledger.query() == []


@pytest.mark.asyncio
async def test_replayed_tick_is_ignored(ledger: Ledger) -> None:
    flip = [
        _tx(OrderSide.SELL, "110", 2000, closing=True),
        _tx(OrderSide.SELL, "110", 2000),
    ]

    assert await ledger.append(60, flip) == 2
    assert await ledger.append(60, flip) == 0

    assert await ledger.query() == flip


@pytest.mark.asyncio
async def test_query_order_keeps_flip_sequence(ledger: Ledger) -> None:
    await ledger.append(
        70,
        [_tx(OrderSide.BUY, "100", 3000, closing=True), _tx(OrderSide.BUY, "100", 3000)],
    )
    await ledger.append(50, [_tx(OrderSide.BUY, "90", 1000)])
    await ledger.append(
        60,
        [_tx(OrderSide.SELL, "95", 2000, closing=True), _tx(OrderSide.SELL, "95", 2000)],
    )

    entries = await ledger.query()

    assert [tx.timestamp_ms for tx in entries] == [1000, 2000, 2000, 3000, 3000]
    assert [tx.is_closing for tx in entries] == [False, True, False, True, False]


@pytest.mark.asyncio
async def test_query_is_scoped(database: TradingDatabase) -> None:
    feb = Ledger(database, "BTC/USDT:5m:2024-02", "BTC/USDT", "5m", 2024, 2)
    mar = Ledger(database, "BTC/USDT:5m:2024-03", "BTC/USDT", "5m", 2024, 3)
    hourly = Ledger(database, "BTC/USDT:1h:2024-02", "BTC/USDT", "1h", 2024, 2)

    await feb.append(50, [_tx(OrderSide.BUY, "1", 1)])
    await mar.append(50, [_tx(OrderSide.BUY, "2", 2)])
    await hourly.append(50, [_tx(OrderSide.BUY, "3", 3)])

    assert [tx.price for tx in await feb.query()] == [Decimal("1")]
    assert [tx.price for tx in await mar.query()] == [Decimal("2")]
    assert [tx.price for tx in await hourly.query()] == [Decimal("3")]
    assert [tx.price for tx in await feb.query(month=3)] == [Decimal("2")]


@pytest.mark.asyncio
async def test_unscoped_live_ledger(database: TradingDatabase) -> None:
    live = Ledger(database, "main", "BTC/USDT", "5m")
    await live.append(1_700_000_000_000, [_tx(OrderSide.SELL, "5", 10)])

    entries = await live.query()
    assert len(entries) == 1
    assert entries[0].profit is None


@pytest.mark.asyncio
async def test_live_ledger_excludes_backtest_and_other_bots(database: TradingDatabase) -> None:
    backtest = Ledger(database, "BTC/USDT:5m:2024-01", "BTC/USDT", "5m", 2024, 1)
    live = Ledger(database, "main", "BTC/USDT", "5m")
    other_bot = Ledger(database, "canary", "BTC/USDT", "5m")

    await backtest.append(50, [_tx(OrderSide.BUY, "1", 1)])
    assert await live.query() == []

    await live.append(7, [_tx(OrderSide.SELL, "2", 2)])
    await other_bot.append(7, [_tx(OrderSide.BUY, "3", 3)])

    assert [tx.price for tx in await live.query()] == [Decimal("2")]
    assert [tx.price for tx in await other_bot.query()] == [Decimal("3")]
    assert [tx.price for tx in await backtest.query()] == [Decimal("1")]
