"""Candle sources driving the run loop.

A source turns market data into ticks: one candle to trade at plus the
closing prices the indicators are computed over. The run loop is identical
for historical replay and live trading; only the source differs.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from decimal import Decimal

from trendbot.data.models import Checkpoint
from trendbot.models import Candle


@dataclass(frozen=True)
class Tick:
    """One unit of work for the run loop.

    cursor identifies the tick for checkpointing and ledger keys: the candle
    index in a backtest, the candle close time in a live run.
    """

    cursor: int
    candle: Candle
    closes: list[Decimal]


class CandleSource(ABC):
    """Strategy interface for where ticks come from."""

    #: True when the source ends by itself (historical replay).
    finite: bool = False

    @abstractmethod
    async def prepare(self, checkpoint: Checkpoint | None) -> None:
        """Load data and position the source after the checkpointed cursor."""
        ...

    @abstractmethod
    def ticks(self) -> AsyncIterator[Tick]:
        """Yield ticks in strictly increasing cursor order until exhausted or stopped."""
        ...

    @abstractmethod
    def checkpoint_due(self, tick: Tick, transacted: bool) -> bool:
        """Whether a checkpoint must be written after this tick."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop yielding new ticks. The tick in flight is not affected."""
        ...

    @property
    @abstractmethod
    def exhausted(self) -> bool:
        """True once every available tick has been yielded (never for live sources)."""
        ...

    def window_snapshot(self) -> list[Candle] | None:
        """Candles to store in the checkpoint, if the source needs them to resume."""
        return None

    async def close(self) -> None:
        """Release background resources."""
        return None
