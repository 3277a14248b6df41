"""Abstract executor interface.

Defines the contract for the execution venue. Both PaperExecutor and
LiveExecutor implement this ABC, so the position state machine and the run
loop are identical regardless of trading mode.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from trendbot.models import OrderResult, OrderSide


class Executor(ABC):
    """Abstract base class for order executors.

    Position management code depends ONLY on this interface. The concrete
    executor (paper or live) is injected at startup based on TradingSettings.mode.
    """

    @abstractmethod
    async def get_balance(self, asset: str) -> Decimal:
        """Return the free balance of an asset.

        Raises:
            BalanceUnavailable: If the balance cannot be retrieved.
        """
        ...

    @abstractmethod
    async def place_market_order(
        self, symbol: str, side: OrderSide, quantity: Decimal
    ) -> OrderResult:
        """Execute a market order and return the fill confirmation.

        Raises:
            OrderRejected: If the venue refuses or fails the order.
        """
        ...

    async def on_price(self, symbol: str, price: Decimal, timestamp_ms: int) -> None:
        """Receive the price of the tick being evaluated (no-op by default)."""
        return None

    def export_balances(self) -> dict[str, Decimal]:
        """Return balances that must survive a restart (none for real venues)."""
        return {}

    def restore_balances(self, balances: dict[str, Decimal]) -> None:
        """Restore balances captured by export_balances (no-op by default)."""
        return None
