"""Position lifecycle for a single instrument: FLAT, LONG and SHORT.

Transitions are driven only by the reduced trend signal:

1. FLAT + GO_LONG / GO_SHORT opens a position sized from the live balance
2. LONG + GO_SHORT (or SHORT + GO_LONG) flips: close first, then open
3. HOLD, or a signal matching the current side, changes nothing

Balance and order failures never propagate. They are reported back to the
run loop through TransitionResult and the position is left as it was after
the last successful order (a failed open after a successful close leaves the
position FLAT with the close already recorded).
"""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal

from trendbot.config import TradingSettings
from trendbot.exceptions import BalanceUnavailable, OrderRejected
from trendbot.exchange.types import split_symbol
from trendbot.execution.executor import Executor
from trendbot.logging import get_logger
from trendbot.models import (
    OrderSide,
    Position,
    PositionSide,
    PositionState,
    Transaction,
)
from trendbot.position.sizing import PositionSizer
from trendbot.signals.models import TrendAction

logger = get_logger(__name__)


@dataclass
class TransitionResult:
    """Outcome of applying one signal to the state machine.

    transactions holds the ledger entries produced, in execution order
    (a flip yields the closing entry first). skipped_reason is set when the
    requested transition did not (fully) happen.
    """

    transactions: list[Transaction] = field(default_factory=list)
    skipped_reason: str | None = None
    error: Exception | None = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


class PositionManager:
    """Owns the open position (if any) for one instrument.

    A single asyncio.Lock serializes transitions so a flip is never observed
    half-done by a concurrent checkpoint.

    Args:
        executor: The order executor (paper or live).
        position_sizer: Calculates entry quantities from balances.
        settings: Trading settings (symbol).
    """

    def __init__(
        self,
        executor: Executor,
        position_sizer: PositionSizer,
        settings: TradingSettings | None = None,
    ) -> None:
        self._executor = executor
        self._position_sizer = position_sizer
        self._settings = settings or TradingSettings()
        self._base_asset, self._quote_asset = split_symbol(self._settings.symbol)
        self._position: Position | None = None
        self._lock = asyncio.Lock()

    @property
    def position(self) -> Position | None:
        return self._position

    @property
    def state(self) -> PositionState:
        if self._position is None:
            return PositionState.FLAT
        return self._position.state

    def restore(self, position: Position | None) -> None:
        """Reinstate a position recovered from a checkpoint."""
        self._position = position
        logger.info(
            "position_restored",
            state=self.state.value,
            entry_price=str(position.entry_price) if position else None,
            quantity=str(position.quantity) if position else None,
        )

    async def apply(
        self, action: TrendAction, price: Decimal, timestamp_ms: int
    ) -> TransitionResult:
        """Drive the state machine with one reduced signal.

        Args:
            action: Action derived from the trend score.
            price: Close of the tick being evaluated.
            timestamp_ms: Close time of that tick, stamped on every transaction.

        Returns:
            TransitionResult with the transactions executed this tick.
        """
        async with self._lock:
            if action == TrendAction.HOLD:
                return TransitionResult()

            target = PositionSide.LONG if action == TrendAction.GO_LONG else PositionSide.SHORT
            if self._position is not None and self._position.side == target:
                return TransitionResult(skipped_reason=f"already_{target.value}")

            transactions: list[Transaction] = []

            if self._position is not None:
                try:
                    transactions.append(await self._close(price, timestamp_ms))
                except (BalanceUnavailable, OrderRejected) as exc:
                    logger.warning(
                        "transition_skipped",
                        stage="close",
                        state=self.state.value,
                        target=target.value,
                        error=str(exc),
                    )
                    return TransitionResult(skipped_reason="close_failed", error=exc)

            try:
                transactions.append(await self._open(target, price, timestamp_ms))
            except (BalanceUnavailable, OrderRejected) as exc:
                logger.warning(
                    "transition_skipped",
                    stage="open",
                    state=self.state.value,
                    target=target.value,
                    error=str(exc),
                )
                return TransitionResult(
                    transactions=transactions, skipped_reason="open_failed", error=exc
                )

            return TransitionResult(transactions=transactions)

    async def _open(
        self, side: PositionSide, price: Decimal, timestamp_ms: int
    ) -> Transaction:
        if side == PositionSide.LONG:
            balance = await self._executor.get_balance(self._quote_asset)
            quantity = self._position_sizer.long_quantity(balance, price)
            order_side = OrderSide.BUY
        else:
            balance = await self._executor.get_balance(self._base_asset)
            quantity = self._position_sizer.short_quantity(balance)
            order_side = OrderSide.SELL

        if quantity <= 0:
            raise BalanceUnavailable(
                f"Balance {balance} too small to open {side.value} at {price}"
            )

        result = await self._executor.place_market_order(
            self._settings.symbol, order_side, quantity
        )

        self._position = Position(
            side=side,
            entry_price=result.filled_price,
            entry_time=timestamp_ms,
            quantity=result.filled_qty,
        )

        logger.info(
            "position_opened",
            side=side.value,
            price=str(result.filled_price),
            quantity=str(result.filled_qty),
            order_id=result.order_id,
        )

        return Transaction(
            side=order_side,
            price=result.filled_price,
            quantity=result.filled_qty,
            notional=result.filled_qty * result.filled_price,
            order_id=result.order_id,
            timestamp_ms=timestamp_ms,
        )

    async def _close(self, price: Decimal, timestamp_ms: int) -> Transaction:
        position = self._position
        assert position is not None

        order_side = OrderSide.SELL if position.side == PositionSide.LONG else OrderSide.BUY
        result = await self._executor.place_market_order(
            self._settings.symbol, order_side, position.quantity
        )

        profit = position.realized_profit(result.filled_price)
        self._position = None

        logger.info(
            "position_closed",
            side=position.side.value,
            entry_price=str(position.entry_price),
            exit_price=str(result.filled_price),
            quantity=str(position.quantity),
            profit=str(profit),
            order_id=result.order_id,
        )

        return Transaction(
            side=order_side,
            price=result.filled_price,
            quantity=result.filled_qty,
            notional=result.filled_qty * result.filled_price,
            order_id=result.order_id,
            timestamp_ms=timestamp_ms,
            profit=profit,
            is_closing=True,
        )
