"""
Deal reconciliation.

The Deals table lists each position as separate legs: an ``in`` deal
that opens it and an ``out`` deal that closes it, both carrying the
same order identifier.  The reconciler folds the ordered deal list into
completed trades, carrying the still-open legs from one row to the next
in a `ReconcileState`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .models import CompletedTrade, LedgerEntry


logger = logging.getLogger(__name__)


@dataclass
class ReconcileState:
    """Opening legs waiting for their close, keyed by order id."""
    open_legs: Dict[str, LedgerEntry] = field(default_factory=dict)


def reconcile_step(
    entry: LedgerEntry,
    state: ReconcileState,
) -> Tuple[Optional[CompletedTrade], ReconcileState]:
    """Apply one deal row to the reconciliation state.

    Parameters
    ----------
    entry : LedgerEntry
        The next deal in document order.
    state : ReconcileState
        Open legs accumulated from earlier rows.

    Returns
    -------
    trade : CompletedTrade or None
        The trade closed by `entry`, or `None` for opening legs and for
        directions other than ``in``/``out``.
    state : ReconcileState
        Updated state for subsequent rows.
    """
    if entry.direction == 'in':
        # A repeated order id replaces the earlier opening leg.
        state.open_legs[entry.order] = entry
        return None, state

    if entry.direction != 'out':
        return None, state

    opening = state.open_legs.pop(entry.order, None)
    if opening is None:
        commission = entry.commission
        swap = entry.swap
        in_price = None
    else:
        commission = entry.commission + opening.commission
        swap = entry.swap + opening.swap
        in_price = opening.price

    trade = CompletedTrade(
        deal_number=entry.deal_number,
        time=entry.time,
        symbol=entry.symbol,
        type=entry.type,
        direction=entry.direction,
        volume=entry.volume,
        in_price=in_price,
        out_price=entry.price,
        profit=entry.profit,
        commission=commission,
        swap=swap,
        balance=entry.balance,
        comment=entry.comment,
    )
    return trade, state


def reconcile_deals(entries: Iterable[LedgerEntry]) -> List[CompletedTrade]:
    """Turn ordered deal rows into completed trades, in closing order.

    Opening legs that are never closed within the statement are dropped
    and do not appear in the result.
    """
    state = ReconcileState()
    trades: List[CompletedTrade] = []
    for entry in entries:
        trade, state = reconcile_step(entry, state)
        if trade is not None:
            trades.append(trade)
    if state.open_legs:
        logger.debug("%d opening legs left without a closing deal", len(state.open_legs))
    return trades
