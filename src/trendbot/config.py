"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Exchange connection settings (any ccxt exchange id, Binance by default)."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    exchange_id: str = "binance"
    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")
    testnet: bool = False


class TradingSettings(BaseSettings):
    """Instrument and order execution parameters."""

    model_config = SettingsConfigDict(env_prefix="TRADING_")

    symbol: str = "BTC/USDT"
    interval: str = "5m"
    mode: Literal["paper", "live"] = "paper"
    allocation_fraction: Decimal = Decimal("0.9")  # share of free balance per entry
    qty_step: Decimal = Decimal("0.000001")
    order_timeout_seconds: float = 10.0


class IndicatorSettings(BaseSettings):
    """RSI/MACD lookback periods.

    The RSI bands and the entry threshold are fixed in signals.reducer.
    """

    model_config = SettingsConfigDict(env_prefix="INDICATOR_")

    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9


class LiveSettings(BaseSettings):
    """Live run configuration.

    Paper balances are only used when TRADING_MODE=paper and no checkpoint
    with balances exists yet.
    """

    model_config = SettingsConfigDict(env_prefix="LIVE_")

    bot_id: str = "main"
    window_size: int = 100
    poll_interval: float = 5.0
    paper_quote_balance: Decimal = Decimal("1000")
    paper_base_balance: Decimal = Decimal("0")


class BacktestSettings(BaseSettings):
    """Backtest run configuration.

    Controls the replayed month, warm-up offset, checkpoint cadence, starting
    balances and the scoring parameters (flat fee, reward:risk ratio).
    All fields configurable via BACKTEST_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="BACKTEST_")

    year: int = 2025
    month: int = 1
    warmup_index: int = 50  # must cover the longest indicator lookback
    checkpoint_every: int = 100
    progress_every: int = 1000
    initial_base_balance: Decimal = Decimal("1")
    initial_quote_balance: Decimal = Decimal("100000")  # virtual funds for long entries
    trading_fee: Decimal = Decimal("0.001")  # 0.1% per side
    reward_risk_ratio: Decimal = Decimal("1.5")


class HistoricalDataSettings(BaseSettings):
    """Storage location and paged history fetch behaviour.

    All fields configurable via HISTORICAL_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="HISTORICAL_")

    db_path: str = "data/trendbot.db"
    page_size: int = 1000
    max_retries: int = 5
    retry_base_delay: float = 1.0
    fetch_batch_delay: float = 0.1


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    run_mode: Literal["live", "backtest"] = "backtest"
    exchange: ExchangeSettings = ExchangeSettings()
    trading: TradingSettings = TradingSettings()
    indicators: IndicatorSettings = IndicatorSettings()
    live: LiveSettings = LiveSettings()
    backtest: BacktestSettings = BacktestSettings()
    historical: HistoricalDataSettings = HistoricalDataSettings()
