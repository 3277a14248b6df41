"""Tests for CcxtClient and exchange types.

All tests use mocked ccxt exchange objects to avoid real API calls.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from trendbot.config import ExchangeSettings
from trendbot.exchange.ccxt_client import CcxtClient
from trendbot.exchange.types import (
    candle_from_ohlcv,
    round_to_step,
    split_symbol,
    timeframe_to_ms,
)


@pytest.fixture
def exchange_settings() -> ExchangeSettings:
    """Exchange settings for testing."""
    return ExchangeSettings(
        exchange_id="binance",
        api_key="test-key",  # type: ignore[arg-type]
        api_secret="test-secret",  # type: ignore[arg-type]
        testnet=False,
    )


@pytest.fixture
def client(exchange_settings: ExchangeSettings) -> CcxtClient:
    return CcxtClient(exchange_settings)


# ---------------------------------------------------------------------------
# Type helpers
# ---------------------------------------------------------------------------


class TestRoundToStep:
    """Tests for the round_to_step helper function."""

    def test_round_down_to_hundredths(self) -> None:
        assert round_to_step(Decimal("1.2345"), Decimal("0.01")) == Decimal("1.23")

    def test_exact_step_unchanged(self) -> None:
        assert round_to_step(Decimal("0.005"), Decimal("0.001")) == Decimal("0.005")

    def test_large_step(self) -> None:
        assert round_to_step(Decimal("17"), Decimal("5")) == Decimal("15")

    def test_value_less_than_step(self) -> None:
        assert round_to_step(Decimal("0.005"), Decimal("0.01")) == Decimal("0.00")


class TestTimeframes:
    """Tests for ccxt timeframe conversion."""

    @pytest.mark.parametrize(
        ("timeframe", "expected"),
        [("1m", 60_000), ("5m", 300_000), ("1h", 3_600_000), ("1d", 86_400_000)],
    )
    def test_timeframe_to_ms(self, timeframe: str, expected: int) -> None:
        assert timeframe_to_ms(timeframe) == expected


class TestCandleFromOhlcv:
    """Tests for OHLCV row conversion."""

    def test_close_time_and_finality(self) -> None:
        row = [1_704_067_200_000, 42000.1, 42100.0, 41900.5, 42050.25, 12.5]

        candle = candle_from_ohlcv(row, 300_000, now_ms=1_704_067_500_000)

        assert candle.close_time == 1_704_067_499_999
        assert candle.close == Decimal("42050.25")
        assert candle.open == Decimal("42000.1")
        assert candle.volume == Decimal("12.5")
        assert candle.is_final is True

    def test_open_candle_is_provisional(self) -> None:
        row = [1_704_067_200_000, 1, 1, 1, 1, None]

        candle = candle_from_ohlcv(row, 300_000, now_ms=1_704_067_400_000)

        assert candle.is_final is False
        assert candle.volume == Decimal("0")


class TestSplitSymbol:
    """Tests for unified symbol parsing."""

    def test_spot_symbol(self) -> None:
        assert split_symbol("BTC/USDT") == ("BTC", "USDT")

    def test_settle_suffix_dropped(self) -> None:
        assert split_symbol("ETH/USDT:USDT") == ("ETH", "USDT")

    def test_invalid_symbol(self) -> None:
        with pytest.raises(ValueError):
            split_symbol("BTCUSDT")


# ---------------------------------------------------------------------------
# CcxtClient tests
# ---------------------------------------------------------------------------


class TestCcxtClientInit:
    """Tests for CcxtClient initialization."""

    def test_standard_init(self, client: CcxtClient) -> None:
        assert client.exchange.enableRateLimit is True
        assert client.exchange.options["defaultType"] == "spot"

    def test_unknown_exchange_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown ccxt exchange"):
            CcxtClient(ExchangeSettings(exchange_id="not-a-venue"))


class TestCcxtClientDelegation:
    """Tests for methods that delegate to ccxt exchange."""

    @pytest.mark.asyncio
    async def test_connect_loads_markets(self, client: CcxtClient) -> None:
        client._exchange.load_markets = AsyncMock(return_value={"BTC/USDT": {}})
        await client.connect()
        client._exchange.load_markets.assert_awaited_once()
        client._exchange.close = AsyncMock()
        await client.close()

    @pytest.mark.asyncio
    async def test_close_calls_exchange_close(self, client: CcxtClient) -> None:
        client._exchange.close = AsyncMock()
        await client.close()
        client._exchange.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fetch_ohlcv_delegates(self, client: CcxtClient) -> None:
        rows = [[1_704_067_200_000, 1, 2, 0.5, 1.5, 10]]
        client._exchange.fetch_ohlcv = AsyncMock(return_value=rows)

        result = await client.fetch_ohlcv("BTC/USDT", "5m", since=1, limit=2)

        assert result == rows
        client._exchange.fetch_ohlcv.assert_awaited_once_with(
            "BTC/USDT", "5m", since=1, limit=2, params={}
        )
        client._exchange.close = AsyncMock()
        await client.close()

    @pytest.mark.asyncio
    async def test_fetch_balance_delegates(self, client: CcxtClient) -> None:
        mock_balance = {"USDT": {"free": 1000, "total": 1000}}
        client._exchange.fetch_balance = AsyncMock(return_value=mock_balance)
        assert await client.fetch_balance() == mock_balance
        client._exchange.close = AsyncMock()
        await client.close()

    @pytest.mark.asyncio
    async def test_create_order_delegates(self, client: CcxtClient) -> None:
        order = {"id": "1", "filled": 0.1}
        client._exchange.create_order = AsyncMock(return_value=order)

        result = await client.create_order("BTC/USDT", "market", "buy", 0.1)

        assert result == order
        client._exchange.create_order.assert_awaited_once_with(
            "BTC/USDT", "market", "buy", 0.1, None, params={}
        )
        client._exchange.close = AsyncMock()
        await client.close()
