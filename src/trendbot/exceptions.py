"""Custom exceptions for the trend bot.

Every error the core raises or translates lives here so the run loop can
decide skip-vs-continue from the type alone. Per-tick errors never stop a run.
"""


class TrendBotError(Exception):
    """Base exception for all trend bot errors."""


class InsufficientData(TrendBotError):
    """Raised when an indicator input is shorter than its lookback requires."""


class BalanceUnavailable(TrendBotError):
    """Raised when a balance cannot be fetched or is too small to size an order."""


class OrderRejected(TrendBotError):
    """Raised when the execution venue refuses or fails a market order."""


class PersistenceFailure(TrendBotError):
    """Raised when a checkpoint or ledger write does not reach the store."""


class DataGap(TrendBotError):
    """Raised when the market data source returns no candles for a window."""
