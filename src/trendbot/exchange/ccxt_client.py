"""Spot exchange client implementation via ccxt async.

Wraps any ccxt.async_support exchange class (Binance by default) with proper
initialization, market loading and async cleanup.
"""

import ccxt.async_support as ccxt_async

from trendbot.config import ExchangeSettings
from trendbot.exchange.client import ExchangeClient
from trendbot.logging import get_logger

logger = get_logger(__name__)


class CcxtClient(ExchangeClient):
    """Concrete spot exchange client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings

        exchange_cls = getattr(ccxt_async, settings.exchange_id, None)
        if exchange_cls is None:
            raise ValueError(f"Unknown ccxt exchange id: {settings.exchange_id}")

        config: dict = {
            "apiKey": settings.api_key.get_secret_value(),
            "secret": settings.api_secret.get_secret_value(),
            "enableRateLimit": True,
            "options": {
                "defaultType": "spot",
            },
        }

        self._exchange = exchange_cls(config)
        if settings.testnet:
            self._exchange.set_sandbox_mode(True)
        self._markets: dict = {}

    @property
    def exchange(self) -> ccxt_async.Exchange:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Initialize connection by loading markets."""
        logger.info(
            "connecting_to_exchange",
            exchange=self._settings.exchange_id,
            testnet=self._settings.testnet,
        )
        self._markets = await self._exchange.load_markets()
        logger.info(
            "exchange_connected",
            exchange=self._settings.exchange_id,
            market_count=len(self._markets),
        )

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        await self._exchange.close()
        logger.info("exchange_connection_closed", exchange=self._settings.exchange_id)

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "5m",
        since: int | None = None,
        limit: int = 1000,
        params: dict | None = None,
    ) -> list[list]:
        """Fetch OHLCV candles via ccxt."""
        return await self._exchange.fetch_ohlcv(
            symbol, timeframe, since=since, limit=limit, params=params or {}
        )

    async def fetch_balance(self) -> dict:
        """Fetch account balance via ccxt."""
        return await self._exchange.fetch_balance()

    async def create_order(
        self,
        symbol: str,
        order_type: str,
        side: str,
        amount: float,
        price: float | None = None,
        params: dict | None = None,
    ) -> dict:
        """Place an order via ccxt."""
        logger.info(
            "creating_order",
            symbol=symbol,
            order_type=order_type,
            side=side,
            amount=amount,
        )
        return await self._exchange.create_order(
            symbol, order_type, side, amount, price, params=params or {}
        )
