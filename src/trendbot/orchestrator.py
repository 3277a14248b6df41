"""Run loop -- drives one instrument run tick by tick.

Each tick flows strictly top to bottom:
  1. PRICE: hand the tick close to the executor (fill price in paper mode)
  2. INDICATORS: RSI and MACD over the tick's closing prices
  3. SIGNAL: reduce the readings to a trend score and action
  4. TRANSITION: drive the position state machine
  5. LEDGER: append the transactions the tick produced
  6. CHECKPOINT: persist cursor, position, balances (and window when live)

The loop is the same for backtests and live runs. Only the CandleSource
differs: historical replay with a checkpoint cadence, or the live feed with
a checkpoint after every tick. Per-tick errors never end the run: missing
data skips the tick, venue failures skip the transition, store failures
degrade resume fidelity until the next successful write.
"""

import time
from dataclasses import dataclass

from structlog.contextvars import bound_contextvars

from trendbot.config import IndicatorSettings
from trendbot.data.checkpoints import CheckpointStore
from trendbot.data.ledger import Ledger
from trendbot.data.models import Checkpoint
from trendbot.exceptions import InsufficientData, PersistenceFailure
from trendbot.execution.executor import Executor
from trendbot.logging import get_logger
from trendbot.market_data.source import CandleSource, Tick
from trendbot.pnl.scorer import ScoreReport
from trendbot.position.manager import PositionManager, TransitionResult
from trendbot.signals.indicators import latest_readings
from trendbot.signals.reducer import reduce_readings

logger = get_logger(__name__)


@dataclass
class RunContext:
    """Mutable state of one instrument run, owned by its RunLoop."""

    run_key: str
    symbol: str
    interval: str
    mode: str  # "backtest" or "live"
    year: int | None = None
    month: int | None = None
    cursor: int = -1
    ticks_processed: int = 0
    ticks_skipped: int = 0
    transactions_recorded: int = 0
    checkpoint_degraded: bool = False
    ledger_degraded: bool = False

    @property
    def persistence_degraded(self) -> bool:
        """True while the last checkpoint write failed or ledger entries are missing."""
        return self.checkpoint_degraded or self.ledger_degraded


class RunLoop:
    """Unified tick loop over any CandleSource.

    Args:
        context: Run identity and counters.
        source: Where ticks come from (backtest replay or live feed).
        position_manager: The position state machine.
        executor: The executor behind the position manager.
        ledger: Transaction ledger scoped to this run.
        checkpoint_store: Store for this run's checkpoint.
        indicator_settings: Indicator periods and score thresholds.
    """

    def __init__(
        self,
        context: RunContext,
        source: CandleSource,
        position_manager: PositionManager,
        executor: Executor,
        ledger: Ledger,
        checkpoint_store: CheckpointStore,
        indicator_settings: IndicatorSettings | None = None,
    ) -> None:
        self._context = context
        self._source = source
        self._position_manager = position_manager
        self._executor = executor
        self._ledger = ledger
        self._checkpoint_store = checkpoint_store
        self._indicator_settings = indicator_settings or IndicatorSettings()
        self._stop_requested = False

    @property
    def context(self) -> RunContext:
        return self._context

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def stop(self) -> None:
        """Request a cooperative stop: finish the tick in flight, then checkpoint and exit."""
        if self._stop_requested:
            return
        self._stop_requested = True
        self._source.stop()
        logger.info("run_loop_stopping_gracefully", run_key=self._context.run_key)

    async def run(self, checkpoint: Checkpoint | None = None) -> RunContext:
        """Resume from checkpoint (if any) and process ticks until exhausted or stopped.

        A final checkpoint is always written before returning.
        """
        ctx = self._context
        with bound_contextvars(run_key=ctx.run_key, mode=ctx.mode):
            self._restore(checkpoint)
            await self._source.prepare(checkpoint)

            logger.info(
                "run_loop_started",
                symbol=ctx.symbol,
                interval=ctx.interval,
                cursor=ctx.cursor,
                state=self._position_manager.state.value,
            )

            try:
                async for tick in self._source.ticks():
                    await self._process_tick(tick)
            finally:
                await self._source.close()
                await self.checkpoint()

            logger.info(
                "run_loop_finished",
                cursor=ctx.cursor,
                ticks_processed=ctx.ticks_processed,
                ticks_skipped=ctx.ticks_skipped,
                transactions=ctx.transactions_recorded,
                exhausted=self._source.exhausted,
                persistence_degraded=ctx.persistence_degraded,
            )
        return ctx

    def _restore(self, checkpoint: Checkpoint | None) -> None:
        if checkpoint is None:
            return
        self._context.cursor = checkpoint.cursor
        self._position_manager.restore(checkpoint.position)
        if checkpoint.balances:
            self._executor.restore_balances(checkpoint.balances)

    async def _process_tick(self, tick: Tick) -> None:
        ctx = self._context
        price = tick.candle.close

        await self._executor.on_price(ctx.symbol, price, tick.candle.close_time)

        try:
            readings = latest_readings(tick.closes, self._indicator_settings)
        except InsufficientData as exc:
            ctx.ticks_skipped += 1
            logger.debug("tick_skipped", cursor=tick.cursor, reason=str(exc))
            result = TransitionResult(skipped_reason="insufficient_data", error=exc)
        else:
            signal = reduce_readings(readings)
            result = await self._position_manager.apply(
                signal.action, price, tick.candle.close_time
            )
            logger.debug(
                "tick_evaluated",
                cursor=tick.cursor,
                price=str(price),
                rsi=str(readings.rsi),
                macd=str(readings.macd.macd),
                signal_line=str(readings.macd.signal),
                score=signal.score,
                action=signal.action.value,
                state=self._position_manager.state.value,
            )

        if result.transactions:
            try:
                await self._ledger.append(tick.cursor, result.transactions)
            except PersistenceFailure as exc:
                ctx.ledger_degraded = True
                logger.error("ledger_write_failed", cursor=tick.cursor, error=str(exc))
            else:
                ctx.transactions_recorded += len(result.transactions)
                if ctx.ledger_degraded:
                    ctx.ledger_degraded = False
                    logger.info("ledger_recovered", cursor=tick.cursor)

        ctx.cursor = tick.cursor
        ctx.ticks_processed += 1

        if self._source.checkpoint_due(tick, bool(result.transactions)):
            await self.checkpoint()

    async def checkpoint(
        self, completed: bool = False, report: ScoreReport | None = None
    ) -> bool:
        """Persist the current run state. Returns False if the write failed."""
        ctx = self._context
        now_ms = int(time.time() * 1000)
        checkpoint = Checkpoint(
            run_key=ctx.run_key,
            symbol=ctx.symbol,
            interval=ctx.interval,
            year=ctx.year,
            month=ctx.month,
            cursor=ctx.cursor,
            balances=self._executor.export_balances(),
            position=self._position_manager.position,
            window=self._source.window_snapshot(),
            completed=completed,
            completed_at=now_ms if completed else None,
            updated_at=now_ms,
            report=report,
        )
        try:
            await self._checkpoint_store.save(checkpoint)
        except PersistenceFailure as exc:
            ctx.checkpoint_degraded = True
            logger.error("checkpoint_write_failed", cursor=ctx.cursor, error=str(exc))
            return False

        if ctx.checkpoint_degraded:
            ctx.checkpoint_degraded = False
            logger.info("checkpoint_recovered", cursor=ctx.cursor)
        return True
