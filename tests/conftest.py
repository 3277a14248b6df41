"""Shared test fixtures for the trend bot."""

from collections.abc import AsyncIterator, Callable
from decimal import Decimal

import pytest
import pytest_asyncio

from trendbot.config import AppSettings, ExchangeSettings, TradingSettings
from trendbot.data.database import TradingDatabase
from trendbot.models import Candle


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (paper mode, dummy API keys)."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(
            api_key="test-api-key",  # type: ignore[arg-type]
            api_secret="test-api-secret",  # type: ignore[arg-type]
            testnet=True,
        ),
        trading=TradingSettings(mode="paper"),
    )


@pytest.fixture
def make_candle() -> Callable[..., Candle]:
    """Factory for candles: make_candle(close_time, close=..., is_final=...)."""

    def _make(close_time: int, close: str | Decimal = "100", is_final: bool = True) -> Candle:
        price = Decimal(str(close))
        return Candle(
            open=price,
            high=price,
            low=price,
            close=price,
            volume=Decimal("1"),
            close_time=close_time,
            is_final=is_final,
        )

    return _make


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncIterator[TradingDatabase]:
    """Connected TradingDatabase in a temporary directory."""
    async with TradingDatabase(str(tmp_path / "trendbot.db")) as db:
        yield db
