"""Live trading executor via exchange client.

Delegates balance queries and market orders to the ExchangeClient (ccxt
wrapper). All monetary values are converted through Decimal(str(value)) to
avoid float precision loss. Venue errors are translated into the bot's own
BalanceUnavailable / OrderRejected so the position state machine can fail soft.
"""

import asyncio
import time
from decimal import Decimal

from trendbot.exceptions import BalanceUnavailable, OrderRejected
from trendbot.exchange.client import ExchangeClient
from trendbot.execution.executor import Executor
from trendbot.logging import get_logger
from trendbot.models import OrderResult, OrderSide

logger = get_logger(__name__)


class LiveExecutor(Executor):
    """Real order executor that delegates to an exchange client.

    Args:
        exchange_client: The exchange client to place real orders through.
        order_timeout_seconds: Upper bound on a single order round trip.
    """

    def __init__(
        self, exchange_client: ExchangeClient, order_timeout_seconds: float = 10.0
    ) -> None:
        self._exchange_client = exchange_client
        self._order_timeout = order_timeout_seconds
        self._last_prices: dict[str, Decimal] = {}

    async def on_price(self, symbol: str, price: Decimal, timestamp_ms: int) -> None:
        """Remember the tick price as a fallback when a fill reports none."""
        self._last_prices[symbol] = price

    async def get_balance(self, asset: str) -> Decimal:
        try:
            balance = await self._exchange_client.fetch_balance()
        except Exception as exc:
            raise BalanceUnavailable(f"Failed to fetch balance for {asset}: {exc}") from exc

        entry = balance.get(asset) or {}
        free = entry.get("free") if isinstance(entry, dict) else None
        return Decimal(str(free)) if free is not None else Decimal("0")

    async def place_market_order(
        self, symbol: str, side: OrderSide, quantity: Decimal
    ) -> OrderResult:
        """Place a real market order on the exchange.

        1. Delegate to exchange_client.create_order() under a timeout.
        2. Parse ccxt order result into OrderResult.
        3. All amounts converted via Decimal(str(value)).

        Raises:
            OrderRejected: On any exchange error, timeout or empty fill.
        """
        try:
            result = await asyncio.wait_for(
                self._exchange_client.create_order(
                    symbol=symbol,
                    order_type="market",
                    side=side.value,
                    amount=float(quantity),
                ),
                timeout=self._order_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise OrderRejected(
                f"Market {side.value} {quantity} {symbol} timed out "
                f"after {self._order_timeout}s"
            ) from exc
        except Exception as exc:
            raise OrderRejected(
                f"Market {side.value} {quantity} {symbol} failed: {exc}"
            ) from exc

        # Parse ccxt order result -- all values through Decimal(str()) to avoid float
        order_id = str(result.get("id", ""))
        filled = result.get("filled")
        filled_qty = Decimal(str(filled)) if filled is not None else quantity
        if filled_qty <= 0:
            raise OrderRejected(f"Order {order_id} for {symbol} was not filled")

        average_price = result.get("average") or result.get("price")
        if average_price:
            filled_price = Decimal(str(average_price))
        else:
            filled_price = self._last_prices.get(symbol, Decimal("0"))

        timestamp = result.get("timestamp")
        ts = int(timestamp) if timestamp else int(time.time() * 1000)

        logger.info(
            "live_order_filled",
            order_id=order_id,
            symbol=symbol,
            side=side.value,
            quantity=str(filled_qty),
            fill_price=str(filled_price),
        )

        return OrderResult(
            order_id=order_id,
            side=side,
            filled_qty=filled_qty,
            filled_price=filled_price,
            timestamp_ms=ts,
            is_simulated=False,
        )
