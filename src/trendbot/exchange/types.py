"""Exchange-specific type conversions and utility functions.

All monetary values use Decimal. Never use float for prices, quantities, or fees.
"""

from decimal import Decimal

import ccxt.async_support as ccxt_async

from trendbot.models import Candle


def round_to_step(value: Decimal, step: Decimal) -> Decimal:
    """Round a value down to the nearest step increment.

    Uses integer division to ensure we always round DOWN (never up),
    which prevents exceeding available balance.

    Args:
        value: The raw quantity to round.
        step: The minimum increment (e.g., 0.000001 for BTC).

    Returns:
        The value rounded down to the nearest step.
    """
    return (value // step) * step


def timeframe_to_ms(timeframe: str) -> int:
    """Convert a ccxt timeframe string ("5m", "1h", ...) to milliseconds."""
    return int(ccxt_async.Exchange.parse_timeframe(timeframe) * 1000)


def candle_from_ohlcv(row: list, timeframe_ms: int, now_ms: int) -> Candle:
    """Build a Candle from a ccxt OHLCV row.

    ccxt rows are [open_time_ms, open, high, low, close, volume]. The close
    time follows the exchange kline convention (open time + interval - 1) and
    the candle is final once that close time has passed.
    """
    close_time = int(row[0]) + timeframe_ms - 1
    return Candle(
        open=Decimal(str(row[1])),
        high=Decimal(str(row[2])),
        low=Decimal(str(row[3])),
        close=Decimal(str(row[4])),
        volume=Decimal(str(row[5] or 0)),
        close_time=close_time,
        is_final=close_time < now_ms,
    )


def split_symbol(symbol: str) -> tuple[str, str]:
    """Split a unified spot symbol like "BTC/USDT" into (base, quote)."""
    base, _, quote = symbol.partition("/")
    if not base or not quote:
        raise ValueError(f"Expected a BASE/QUOTE symbol, got {symbol!r}")
    return base, quote.split(":")[0]
