"""
Statistics over reconciled trades and balance series.

The statement already carries the terminal's own figures; the helpers
here recompute a few of them from the parsed records so that an export
can be cross-checked against its statement.
"""

from __future__ import annotations

from typing import List

from ..ingest.models import BalanceSample, CompletedTrade


def compute_trade_stats(trades: List[CompletedTrade]) -> dict:
    """Summarise reconciled trades.

    Parameters
    ----------
    trades : list of CompletedTrade
        Trades in closing order, matched or not.

    Returns
    -------
    dict
        Counts and money totals of the trades.
    """
    wins = [t.profit for t in trades if t.profit > 0]
    losses = [t.profit for t in trades if t.profit < 0]
    return {
        'total_trades': len(trades),
        'closed_trades': sum(1 for t in trades if t.is_matched),
        'with_in_price': sum(1 for t in trades if t.in_price is not None),
        'with_out_price': sum(1 for t in trades if t.out_price is not None),
        'winning_trades': len(wins),
        'losing_trades': len(losses),
        'gross_profit': sum(wins),
        'gross_loss': sum(losses),
        'net_profit': sum(t.profit for t in trades),
        'commission': sum(t.commission for t in trades),
        'swap': sum(t.swap for t in trades),
    }


def _drawdown(values: List[float]) -> tuple:
    peak = values[0]
    max_abs = 0.0
    max_pct = 0.0
    for value in values:
        if value > peak:
            peak = value
        drop = peak - value
        if drop > max_abs:
            max_abs = drop
        pct = drop / peak * 100 if peak > 0 else 0.0
        if pct > max_pct:
            max_pct = pct
    return max_abs, max_pct


def compute_balance_stats(samples: List[BalanceSample]) -> dict:
    """Recompute peak-to-trough drawdowns from a balance series."""
    if not samples:
        return {
            'samples': 0,
            'start_balance': None,
            'end_balance': None,
            'balance_drawdown_maximal': None,
            'balance_drawdown_relative': None,
            'equity_drawdown_maximal': None,
            'equity_drawdown_relative': None,
        }

    balance_dd, balance_pct = _drawdown([s.balance for s in samples])
    equity_dd, equity_pct = _drawdown([s.equity for s in samples])
    return {
        'samples': len(samples),
        'start_balance': samples[0].balance,
        'end_balance': samples[-1].balance,
        'balance_drawdown_maximal': balance_dd,
        'balance_drawdown_relative': balance_pct,
        'equity_drawdown_maximal': equity_dd,
        'equity_drawdown_relative': equity_pct,
    }
