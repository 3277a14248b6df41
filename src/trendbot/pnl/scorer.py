"""Post-run scoring of a transaction ledger.

Transactions are paired by strict chronological adjacency: entry i and i+1
form one round trip whenever their sides differ, whether or not they belong
to the same position. Each pair is scored on its price delta:

- BUY first with a rising price, or SELL first with a falling price, is a win
  worth |delta| * reward_risk_ratio
- anything else is a loss worth |delta|
- a flat fee of fee_rate * (entry price + exit price) is always subtracted

The running base balance grows by trade profit / exit price.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from trendbot.models import OrderSide, Transaction


@dataclass(frozen=True)
class ScoreReport:
    """Aggregate result of a scored ledger."""

    total_trades: int
    wins: int
    losses: int
    win_rate: Decimal  # percent, 0 when there are no trades
    total_profit: Decimal  # quote currency
    final_base_balance: Decimal


def score_transactions(
    transactions: Sequence[Transaction],
    initial_base_balance: Decimal = Decimal("1"),
    fee_rate: Decimal = Decimal("0.001"),
    reward_risk_ratio: Decimal = Decimal("1.5"),
) -> ScoreReport:
    """Score a chronologically ordered ledger.

    Args:
        transactions: Ledger entries, oldest first.
        initial_base_balance: Starting base-currency balance.
        fee_rate: Flat fee per side, applied to the sum of both prices.
        reward_risk_ratio: Multiplier on the price delta of winning trades.

    Returns:
        ScoreReport with trade counts, win rate, profit and final base balance.
    """
    profit = Decimal("0")
    wins = 0
    losses = 0
    base_balance = initial_base_balance

    for current, nxt in zip(transactions, transactions[1:]):
        if current.side == nxt.side:
            continue

        delta = nxt.price - current.price
        is_win = (current.side == OrderSide.BUY and delta > 0) or (
            current.side == OrderSide.SELL and delta < 0
        )
        trade_result = abs(delta) * reward_risk_ratio if is_win else abs(delta)
        fee = (current.price + nxt.price) * fee_rate
        trade_profit = (trade_result if is_win else -trade_result) - fee

        profit += trade_profit
        base_balance += trade_profit / nxt.price

        if is_win:
            wins += 1
        else:
            losses += 1

    total = wins + losses
    win_rate = Decimal(wins) / Decimal(total) * 100 if total else Decimal("0")

    return ScoreReport(
        total_trades=total,
        wins=wins,
        losses=losses,
        win_rate=win_rate,
        total_profit=profit,
        final_base_balance=base_balance,
    )
