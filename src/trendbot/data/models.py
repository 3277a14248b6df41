"""Persisted run state models.

Checkpoint is validated with pydantic on load so a truncated or hand-edited
row is detected and treated as a fresh start instead of reviving half a state.

CRITICAL: All monetary values use Decimal. They are serialized as strings.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from trendbot.models import Candle, Position
from trendbot.pnl.scorer import ScoreReport


class Checkpoint(BaseModel):
    """Resume point for one run, overwritten in place on every persist.

    cursor is the last fully processed tick: the candle index for backtests,
    the candle close time for live runs (-1 before the first tick).
    balances only holds paper executor balances; live venues report their own.
    window is only present for live runs.
    """

    model_config = ConfigDict(frozen=True)

    run_key: str
    symbol: str
    interval: str
    year: int | None = None
    month: int | None = None
    cursor: int = -1
    balances: dict[str, Decimal] = Field(default_factory=dict)
    position: Position | None = None
    window: list[Candle] | None = None
    completed: bool = False
    completed_at: int | None = None
    updated_at: int
    report: ScoreReport | None = None
