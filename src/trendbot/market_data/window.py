"""Rolling window of the most recent final candles.

Fixed capacity, oldest evicted first. Only final candles with a close time
strictly after the newest one already held are admitted, so the window is
always ordered by strictly increasing close time.
"""

from collections import deque
from decimal import Decimal

from trendbot.logging import get_logger
from trendbot.models import Candle

logger = get_logger(__name__)


class RollingWindow:
    """FIFO window of final candles used to derive the closing-price sequence.

    Args:
        capacity: Maximum number of candles held.
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._candles: deque[Candle] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._candles)

    @property
    def last_close_time(self) -> int | None:
        return self._candles[-1].close_time if self._candles else None

    def append(self, candle: Candle) -> bool:
        """Admit a candle if it is final and newer than the latest one held.

        Returns:
            True if the candle was added, False if it was rejected.
        """
        if not candle.is_final:
            return False
        last = self.last_close_time
        if last is not None and candle.close_time <= last:
            logger.debug(
                "stale_candle_ignored",
                close_time=candle.close_time,
                last_close_time=last,
            )
            return False
        self._candles.append(candle)
        return True

    def closes(self) -> list[Decimal]:
        return [c.close for c in self._candles]

    def snapshot(self) -> list[Candle]:
        """Copy of the held candles, oldest first, for checkpointing."""
        return list(self._candles)

    def restore(self, candles: list[Candle]) -> None:
        """Replace the contents with checkpointed candles.

        Candles are re-admitted through append() so a corrupted snapshot can
        never break the ordering invariant.
        """
        self._candles.clear()
        for candle in candles:
            self.append(candle)
