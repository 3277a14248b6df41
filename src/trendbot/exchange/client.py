"""Abstract exchange client interface.

Defines the contract for all exchange implementations. The data fetcher,
live feed and live executor depend only on this interface, keeping
ccxt-specific details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod


class ExchangeClient(ABC):
    """Abstract base class for exchange API clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection and load markets."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "5m",
        since: int | None = None,
        limit: int = 1000,
        params: dict | None = None,
    ) -> list[list]:
        """Fetch OHLCV candle data, oldest first.

        Returns list of [open_time_ms, open, high, low, close, volume].
        Pagination is NOT handled here -- callers iterate with ``since``.
        """
        ...

    @abstractmethod
    async def fetch_balance(self) -> dict:
        """Fetch account balance in ccxt shape ({asset: {"free": ...}, ...})."""
        ...

    @abstractmethod
    async def create_order(
        self,
        symbol: str,
        order_type: str,
        side: str,
        amount: float,
        price: float | None = None,
        params: dict | None = None,
    ) -> dict:
        """Place an order on the exchange."""
        ...
