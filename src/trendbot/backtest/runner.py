"""High-level entry point for running a month-long backtest.

run_backtest() wires a paper executor, the position state machine, the
ledger and the checkpoint store around a BacktestSource, runs the unified
RunLoop, then scores the ledger. A completed run is marked in its checkpoint
together with the report; running it again only re-scores the ledger.
"""

import asyncio
import time

from trendbot.backtest.models import BacktestConfig, BacktestResult
from trendbot.backtest.source import BacktestSource
from trendbot.config import AppSettings
from trendbot.data.candles import CandleCache
from trendbot.data.checkpoints import CheckpointStore
from trendbot.data.database import TradingDatabase
from trendbot.data.fetcher import HistoricalCandleFetcher
from trendbot.data.ledger import Ledger
from trendbot.exchange.client import ExchangeClient
from trendbot.exchange.types import split_symbol
from trendbot.execution.paper_executor import PaperExecutor
from trendbot.logging import get_logger
from trendbot.orchestrator import RunContext, RunLoop
from trendbot.pnl.scorer import ScoreReport, score_transactions
from trendbot.position.manager import PositionManager
from trendbot.position.sizing import PositionSizer

logger = get_logger(__name__)


async def score_ledger(ledger: Ledger, settings: AppSettings) -> ScoreReport:
    transactions = await ledger.query()
    return score_transactions(
        transactions,
        initial_base_balance=settings.backtest.initial_base_balance,
        fee_rate=settings.backtest.trading_fee,
        reward_risk_ratio=settings.backtest.reward_risk_ratio,
    )


async def _stop_when_set(stop_event: asyncio.Event, loop: RunLoop) -> None:
    await stop_event.wait()
    loop.stop()


async def run_backtest(
    config: BacktestConfig,
    exchange: ExchangeClient,
    database: TradingDatabase,
    settings: AppSettings | None = None,
    stop_event: asyncio.Event | None = None,
) -> BacktestResult:
    """Run (or resume) a single backtest.

    Args:
        config: Which symbol, interval and month to replay.
        exchange: Source of historical candles (only hit on a cache miss).
        database: Connected database for checkpoints, ledger and candles.
        settings: Application settings. Defaults to AppSettings().
        stop_event: When set, the run stops after the tick in flight.

    Returns:
        BacktestResult with the Scorer report.
    """
    if settings is None:
        settings = AppSettings()
    bt = settings.backtest

    checkpoint_store = CheckpointStore(database)
    ledger = Ledger(
        database,
        run_key=config.run_key,
        symbol=config.symbol,
        interval=config.interval,
        year=config.year,
        month=config.month,
    )

    checkpoint = await checkpoint_store.load(config.run_key)
    if checkpoint is not None and checkpoint.completed:
        report = await score_ledger(ledger, settings)
        if checkpoint.report is not None and checkpoint.report != report:
            logger.warning(
                "stored_report_differs",
                run_key=config.run_key,
                stored_trades=checkpoint.report.total_trades,
                rescored_trades=report.total_trades,
            )
        logger.info(
            "backtest_already_completed",
            run_key=config.run_key,
            completed_at=checkpoint.completed_at,
        )
        return BacktestResult(
            run_key=config.run_key,
            report=report,
            completed=True,
            candles=0,
            ticks_processed=0,
            resumed_from=checkpoint.cursor,
            already_completed=True,
        )

    base, quote = split_symbol(config.symbol)
    executor = PaperExecutor(
        {base: bt.initial_base_balance, quote: bt.initial_quote_balance}
    )
    trading = settings.trading.model_copy(
        update={"symbol": config.symbol, "interval": config.interval}
    )
    position_manager = PositionManager(executor, PositionSizer(trading), trading)
    fetcher = HistoricalCandleFetcher(exchange, CandleCache(database), settings.historical)
    source = BacktestSource(fetcher, config, bt)

    context = RunContext(
        run_key=config.run_key,
        symbol=config.symbol,
        interval=config.interval,
        mode="backtest",
        year=config.year,
        month=config.month,
    )
    loop = RunLoop(
        context=context,
        source=source,
        position_manager=position_manager,
        executor=executor,
        ledger=ledger,
        checkpoint_store=checkpoint_store,
        indicator_settings=settings.indicators,
    )

    start_time = time.monotonic()
    watcher = (
        asyncio.create_task(_stop_when_set(stop_event, loop))
        if stop_event is not None
        else None
    )
    try:
        await loop.run(checkpoint)
    finally:
        if watcher is not None:
            watcher.cancel()

    report = await score_ledger(ledger, settings)
    completed = source.exhausted
    if completed:
        await loop.checkpoint(completed=True, report=report)

    logger.info(
        "backtest_complete" if completed else "backtest_interrupted",
        run_key=config.run_key,
        cursor=context.cursor,
        candles=len(source.candles),
        final_base_balance=str(report.final_base_balance),
        total_trades=report.total_trades,
        wins=report.wins,
        losses=report.losses,
        win_rate=str(report.win_rate),
        total_profit=str(report.total_profit),
        elapsed_seconds=round(time.monotonic() - start_time, 2),
    )

    return BacktestResult(
        run_key=config.run_key,
        report=report,
        completed=completed,
        candles=len(source.candles),
        ticks_processed=context.ticks_processed,
        resumed_from=checkpoint.cursor if checkpoint is not None else None,
    )
