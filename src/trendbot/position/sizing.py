"""Position size calculation from available balances.

All calculations use Decimal arithmetic exclusively -- no float conversions.
Uses round_to_step from exchange/types.py for qty_step rounding (always down).

Position sizing flow:
1. Long entries spend allocation_fraction of the free quote balance at the tick price
2. Short entries sell allocation_fraction of the free base balance
3. Round down to qty_step
4. A zero result means the balance is too small to trade
"""

from decimal import Decimal

from trendbot.config import TradingSettings
from trendbot.exchange.types import round_to_step


class PositionSizer:
    """Calculates entry quantities from the balances reported by the venue.

    Rounding is always DOWN to prevent exceeding the available balance.

    Args:
        settings: Trading settings containing allocation_fraction and qty_step.
    """

    def __init__(self, settings: TradingSettings) -> None:
        self._settings = settings

    def long_quantity(self, quote_balance: Decimal, price: Decimal) -> Decimal:
        """Base quantity to buy: quote_balance * fraction / price, rounded down."""
        if price <= 0 or quote_balance <= 0:
            return Decimal("0")
        raw_qty = quote_balance * self._settings.allocation_fraction / price
        return round_to_step(raw_qty, self._settings.qty_step)

    def short_quantity(self, base_balance: Decimal) -> Decimal:
        """Base quantity to sell: base_balance * fraction, rounded down."""
        if base_balance <= 0:
            return Decimal("0")
        raw_qty = base_balance * self._settings.allocation_fraction
        return round_to_step(raw_qty, self._settings.qty_step)
