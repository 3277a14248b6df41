"""Paper trading executor with simulated fills.

Fills market orders instantly at the price of the tick being evaluated and
tracks virtual base/quote balances. Serves both backtests (prices replayed
from history) and paper live runs (prices from the candle feed). Fees are not
charged here: the flat round-trip fee is applied by the scorer.

Order ids are derived from the fill itself so that replaying a tick after a
restart produces the same ledger entry.
"""

from decimal import Decimal
from uuid import NAMESPACE_URL, uuid5

from trendbot.exceptions import OrderRejected
from trendbot.exchange.types import split_symbol
from trendbot.execution.executor import Executor
from trendbot.logging import get_logger
from trendbot.models import OrderResult, OrderSide

logger = get_logger(__name__)


class PaperExecutor(Executor):
    """Simulated order executor with virtual balances.

    Prices are injected via on_price() before each tick rather than fetched,
    so the same position manager runs unchanged in backtest and paper mode.

    Args:
        balances: Starting virtual balances keyed by asset (e.g. {"BTC": 1}).
    """

    def __init__(self, balances: dict[str, Decimal] | None = None) -> None:
        self._balances: dict[str, Decimal] = dict(balances or {})
        self._prices: dict[str, Decimal] = {}
        self._current_time_ms: int = 0

    async def on_price(self, symbol: str, price: Decimal, timestamp_ms: int) -> None:
        """Set the fill price and simulated time for subsequent orders."""
        self._prices[symbol] = price
        self._current_time_ms = timestamp_ms

    def export_balances(self) -> dict[str, Decimal]:
        return dict(self._balances)

    def restore_balances(self, balances: dict[str, Decimal]) -> None:
        self._balances = dict(balances)
        logger.info(
            "paper_balances_restored",
            balances={asset: str(amount) for asset, amount in balances.items()},
        )

    async def get_balance(self, asset: str) -> Decimal:
        return self._balances.get(asset, Decimal("0"))

    async def place_market_order(
        self, symbol: str, side: OrderSide, quantity: Decimal
    ) -> OrderResult:
        """Fill an order at the current tick price.

        Raises:
            OrderRejected: If no price is set, the quantity is not positive,
                or the virtual balance cannot cover the order.
        """
        price = self._prices.get(symbol)
        if price is None:
            raise OrderRejected(f"No price set for {symbol}. Call on_price() first.")
        if quantity <= 0:
            raise OrderRejected(f"Order quantity must be positive, got {quantity}")

        base, quote = split_symbol(symbol)
        notional = quantity * price

        if side == OrderSide.BUY:
            available = self._balances.get(quote, Decimal("0"))
            if available < notional:
                raise OrderRejected(
                    f"Insufficient {quote}: need {notional}, have {available}"
                )
            self._balances[quote] = available - notional
            self._balances[base] = self._balances.get(base, Decimal("0")) + quantity
        else:
            available = self._balances.get(base, Decimal("0"))
            if available < quantity:
                raise OrderRejected(
                    f"Insufficient {base}: need {quantity}, have {available}"
                )
            self._balances[base] = available - quantity
            self._balances[quote] = self._balances.get(quote, Decimal("0")) + notional

        order_id = "paper_" + uuid5(
            NAMESPACE_URL,
            f"{symbol}|{self._current_time_ms}|{side.value}|{quantity}",
        ).hex[:12]

        logger.debug(
            "paper_order_filled",
            order_id=order_id,
            symbol=symbol,
            side=side.value,
            quantity=str(quantity),
            fill_price=str(price),
            sim_time=self._current_time_ms,
        )

        return OrderResult(
            order_id=order_id,
            side=side,
            filled_qty=quantity,
            filled_price=price,
            timestamp_ms=self._current_time_ms,
            is_simulated=True,
        )
