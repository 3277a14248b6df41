"""Shared data models for the trend bot.

CRITICAL: All monetary values use Decimal. Never use float for prices, quantities, or fees.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class OrderSide(str, Enum):
    """Order direction."""

    BUY = "buy"
    SELL = "sell"


class PositionSide(str, Enum):
    """Position direction."""

    LONG = "long"
    SHORT = "short"


class PositionState(str, Enum):
    """State of the single-instrument position state machine."""

    FLAT = "flat"
    LONG = "long"
    SHORT = "short"


@dataclass(frozen=True)
class Candle:
    """A single OHLCV candle.

    close_time is the exchange close timestamp in milliseconds and increases
    strictly from one candle to the next. Provisional candles (is_final=False)
    may still be revised and are never admitted into the rolling window.
    """

    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    close_time: int
    is_final: bool = True


@dataclass
class Position:
    """The open position for the traded instrument (at most one at a time)."""

    side: PositionSide
    entry_price: Decimal
    entry_time: int  # close time of the candle that opened it, ms
    quantity: Decimal

    @property
    def state(self) -> PositionState:
        return PositionState(self.side.value)

    def realized_profit(self, exit_price: Decimal) -> Decimal:
        """Profit in quote currency from closing the whole quantity at exit_price."""
        if self.side == PositionSide.LONG:
            return (exit_price - self.entry_price) * self.quantity
        return (self.entry_price - exit_price) * self.quantity


@dataclass(frozen=True)
class OrderResult:
    """Fill confirmation returned by an executor."""

    order_id: str
    side: OrderSide
    filled_qty: Decimal
    filled_price: Decimal
    timestamp_ms: int
    is_simulated: bool = False


@dataclass(frozen=True)
class Transaction:
    """Immutable ledger entry for one executed market order.

    profit is only set on closing transactions.
    """

    side: OrderSide
    price: Decimal
    quantity: Decimal
    notional: Decimal
    order_id: str
    timestamp_ms: int
    profit: Decimal | None = None
    is_closing: bool = False
