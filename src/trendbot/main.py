"""Entry point for the RSI/MACD trend bot.

Dispatches on RUN_MODE:
- backtest: replay BACKTEST_YEAR/BACKTEST_MONTH and log the score
- live: trade the live candle feed (paper or real orders per TRADING_MODE),
  then score the bot's ledger on shutdown

Handles SIGINT/SIGTERM for a cooperative stop: the tick in flight finishes,
a final checkpoint is written, then the process exits.

Component wiring order (in _build_live_loop):
1. CheckpointStore + Ledger (keyed by LIVE_BOT_ID)
2. Executor (PaperExecutor or LiveExecutor based on mode)
3. PositionSizer + PositionManager (state machine)
4. HistoricalCandleFetcher (warm start) + LiveCandleFeed (polling)
5. RollingWindow + LiveSource
6. RunLoop
"""

import asyncio
import signal

from trendbot.backtest.models import BacktestConfig
from trendbot.backtest.runner import run_backtest, score_ledger
from trendbot.config import AppSettings
from trendbot.data.checkpoints import CheckpointStore
from trendbot.data.database import TradingDatabase
from trendbot.data.fetcher import HistoricalCandleFetcher
from trendbot.data.ledger import Ledger
from trendbot.exchange.ccxt_client import CcxtClient
from trendbot.exchange.client import ExchangeClient
from trendbot.exchange.types import split_symbol
from trendbot.execution.executor import Executor
from trendbot.logging import get_logger, setup_logging
from trendbot.market_data.feed import LiveCandleFeed, LiveSource
from trendbot.market_data.window import RollingWindow
from trendbot.orchestrator import RunContext, RunLoop
from trendbot.pnl.scorer import ScoreReport
from trendbot.position.manager import PositionManager
from trendbot.position.sizing import PositionSizer


def _build_executor(settings: AppSettings, exchange: ExchangeClient) -> Executor:
    """Create the executor for the configured trading mode."""
    if settings.trading.mode == "paper":
        from trendbot.execution.paper_executor import PaperExecutor

        base, quote = split_symbol(settings.trading.symbol)
        return PaperExecutor(
            {
                base: settings.live.paper_base_balance,
                quote: settings.live.paper_quote_balance,
            }
        )

    from trendbot.execution.live_executor import LiveExecutor

    return LiveExecutor(exchange, settings.trading.order_timeout_seconds)


def _build_live_loop(
    settings: AppSettings, exchange: ExchangeClient, database: TradingDatabase
) -> RunLoop:
    """Wire the live run loop around the polling candle feed."""
    symbol = settings.trading.symbol
    interval = settings.trading.interval
    run_key = settings.live.bot_id

    executor = _build_executor(settings, exchange)
    position_manager = PositionManager(
        executor, PositionSizer(settings.trading), settings.trading
    )
    fetcher = HistoricalCandleFetcher(exchange, None, settings.historical)
    feed = LiveCandleFeed(
        exchange, symbol, interval, poll_interval=settings.live.poll_interval
    )
    source = LiveSource(
        feed, fetcher, RollingWindow(settings.live.window_size), symbol, interval
    )

    return RunLoop(
        context=RunContext(run_key=run_key, symbol=symbol, interval=interval, mode="live"),
        source=source,
        position_manager=position_manager,
        executor=executor,
        ledger=Ledger(database, run_key=run_key, symbol=symbol, interval=interval),
        checkpoint_store=CheckpointStore(database),
        indicator_settings=settings.indicators,
    )


def _setup_signal_handlers(stop_event: asyncio.Event) -> None:
    """Register SIGINT/SIGTERM to request a cooperative stop.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("trendbot.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


async def _run_live(
    settings: AppSettings,
    exchange: ExchangeClient,
    database: TradingDatabase,
    stop_event: asyncio.Event,
) -> ScoreReport:
    """Trade until stopped, then score this bot's ledger and log the report."""
    run_loop = _build_live_loop(settings, exchange, database)
    checkpoint = await CheckpointStore(database).load(settings.live.bot_id)

    async def _stop_when_set() -> None:
        await stop_event.wait()
        run_loop.stop()

    watcher = asyncio.create_task(_stop_when_set())
    try:
        await run_loop.run(checkpoint)
    finally:
        watcher.cancel()

    ledger = Ledger(
        database,
        run_key=settings.live.bot_id,
        symbol=settings.trading.symbol,
        interval=settings.trading.interval,
    )
    report = await score_ledger(ledger, settings)
    get_logger("trendbot.main").info(
        "live_summary",
        bot_id=settings.live.bot_id,
        total_trades=report.total_trades,
        wins=report.wins,
        losses=report.losses,
        win_rate=f"{report.win_rate:.2f}%",
        total_profit=f"{report.total_profit:.2f}",
    )
    return report


async def run() -> None:
    """Run the trend bot in the configured mode."""
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level)
    logger = get_logger("trendbot.main")

    stop_event = asyncio.Event()
    _setup_signal_handlers(stop_event)

    exchange = CcxtClient(settings.exchange)
    if settings.run_mode == "live" and settings.trading.mode == "live":
        if not settings.exchange.api_key.get_secret_value():
            logger.warning(
                "no_api_keys_configured",
                mode="live",
                note="Balance and order endpoints will fail.",
            )

    logger.info(
        "trendbot_starting",
        run_mode=settings.run_mode,
        trading_mode=settings.trading.mode,
        symbol=settings.trading.symbol,
        interval=settings.trading.interval,
    )

    try:
        await exchange.connect()
        async with TradingDatabase(settings.historical.db_path) as database:
            if settings.run_mode == "backtest":
                config = BacktestConfig(
                    symbol=settings.trading.symbol,
                    interval=settings.trading.interval,
                    year=settings.backtest.year,
                    month=settings.backtest.month,
                )
                result = await run_backtest(
                    config, exchange, database, settings, stop_event=stop_event
                )
                report = result.report
                logger.info(
                    "backtest_summary",
                    run_key=result.run_key,
                    completed=result.completed,
                    initial_base_balance=str(settings.backtest.initial_base_balance),
                    final_base_balance=f"{report.final_base_balance:.8f}",
                    total_trades=report.total_trades,
                    wins=report.wins,
                    losses=report.losses,
                    win_rate=f"{report.win_rate:.2f}%",
                    total_profit=f"{report.total_profit:.2f}",
                )
            else:
                await _run_live(settings, exchange, database, stop_event)
    finally:
        await exchange.close()
        logger.info("trendbot_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
