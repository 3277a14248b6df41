"""Checkpoint store: one upserted row per run key.

Backtest run keys are "<symbol>:<interval>:<YYYY-MM>", live run keys are the
configured bot id.
"""

from pydantic import ValidationError

from trendbot.data.database import TradingDatabase
from trendbot.data.models import Checkpoint
from trendbot.exceptions import PersistenceFailure
from trendbot.logging import get_logger

logger = get_logger(__name__)


def backtest_run_key(symbol: str, interval: str, year: int, month: int) -> str:
    return f"{symbol}:{interval}:{year:04d}-{month:02d}"


class CheckpointStore:
    """Typed access to the checkpoints table.

    Usage:
        async with TradingDatabase("data/trendbot.db") as database:
            store = CheckpointStore(database)
            checkpoint = await store.load("main")
    """

    def __init__(self, database: TradingDatabase) -> None:
        self._database = database

    async def load(self, run_key: str) -> Checkpoint | None:
        """Return the validated checkpoint for run_key.

        A missing row or a payload that fails validation returns None
        (fresh start); the latter is logged as a warning.
        """
        cursor = await self._database.db.execute(
            "SELECT payload FROM checkpoints WHERE run_key = ?",
            (run_key,),
        )
        row = await cursor.fetchone()
        if row is None:
            logger.info("checkpoint_not_found", run_key=run_key)
            return None

        try:
            checkpoint = Checkpoint.model_validate_json(row[0])
        except ValidationError as exc:
            logger.warning(
                "checkpoint_invalid",
                run_key=run_key,
                errors=exc.error_count(),
                detail=str(exc).splitlines()[0],
            )
            return None

        if checkpoint.run_key != run_key:
            logger.warning(
                "checkpoint_key_mismatch",
                run_key=run_key,
                stored_key=checkpoint.run_key,
            )
            return None

        logger.info(
            "checkpoint_loaded",
            run_key=run_key,
            cursor=checkpoint.cursor,
            completed=checkpoint.completed,
        )
        return checkpoint

    async def save(self, checkpoint: Checkpoint) -> None:
        """Upsert the checkpoint for its run key.

        Raises:
            PersistenceFailure: If the write does not reach the database.
        """
        try:
            await self._database.db.execute(
                "INSERT INTO checkpoints "
                "(run_key, symbol, interval, year, month, payload, completed, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(run_key) DO UPDATE SET "
                "symbol = excluded.symbol, interval = excluded.interval, "
                "year = excluded.year, month = excluded.month, "
                "payload = excluded.payload, completed = excluded.completed, "
                "updated_at = excluded.updated_at",
                (
                    checkpoint.run_key,
                    checkpoint.symbol,
                    checkpoint.interval,
                    checkpoint.year,
                    checkpoint.month,
                    checkpoint.model_dump_json(),
                    int(checkpoint.completed),
                    checkpoint.updated_at,
                ),
            )
            await self._database.db.commit()
        except Exception as exc:
            raise PersistenceFailure(
                f"Failed to write checkpoint {checkpoint.run_key}: {exc}"
            ) from exc

        logger.debug(
            "checkpoint_saved",
            run_key=checkpoint.run_key,
            cursor=checkpoint.cursor,
            completed=checkpoint.completed,
        )
