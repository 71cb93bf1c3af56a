"""
Cross-report aggregation queries.

Roll-ups used to compare instrument × schedule × expert advisor
variants.  Every function takes an open `ReportStore`, applies the
optional filters and returns plain dictionaries.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from sqlalchemy import func, select

from .database import BalanceRecord, DealRecord, ReportRecord, ReportStore
from ..utils.timeutils import month_start


def _rows(store: ReportStore, stmt) -> List[Dict[str, Any]]:
    with store.session() as session:
        return [dict(row._mapping) for row in session.execute(stmt)]


def _overall_rate(profitable: Optional[float], total: Optional[float]) -> Optional[float]:
    if not total:
        return None
    return round(float(profitable or 0) / float(total) * 100, 2)


def _winning(profits: pd.Series) -> int:
    return int((profits > 0).sum())


def _losing(profits: pd.Series) -> int:
    return int((profits < 0).sum())


def all_reports(store: ReportStore, ea_name: Optional[str] = None) -> List[Dict[str, Any]]:
    """Summary row of every stored report, ordered by its key."""
    stmt = select(
        ReportRecord.id,
        ReportRecord.instrument,
        ReportRecord.strategy,
        ReportRecord.ea_name,
        ReportRecord.net_profit,
        ReportRecord.profitable_trades,
        ReportRecord.total_trades,
        ReportRecord.win_rate,
        ReportRecord.loss_rate,
        ReportRecord.balance_drawdown_maximal,
        ReportRecord.equity_drawdown_maximal,
        ReportRecord.consecutive_wins,
        ReportRecord.consecutive_losses,
        ReportRecord.max_consecutive_wins,
        ReportRecord.max_consecutive_losses,
    )
    if ea_name:
        stmt = stmt.where(ReportRecord.ea_name == ea_name)
    stmt = stmt.order_by(ReportRecord.instrument, ReportRecord.strategy, ReportRecord.ea_name)
    return _rows(store, stmt)


def max_drawdown(
    store: ReportStore,
    instrument: Optional[str] = None,
    strategy: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Largest drawdowns per instrument and schedule, worst first."""
    max_balance = func.max(ReportRecord.balance_drawdown_maximal).label('max_balance_drawdown')
    stmt = select(
        ReportRecord.instrument,
        ReportRecord.strategy,
        max_balance,
        func.max(ReportRecord.equity_drawdown_maximal).label('max_equity_drawdown'),
        func.max(ReportRecord.balance_drawdown_relative).label('max_balance_drawdown_pct'),
        func.max(ReportRecord.equity_drawdown_relative).label('max_equity_drawdown_pct'),
    )
    if instrument:
        stmt = stmt.where(ReportRecord.instrument == instrument)
    if strategy:
        stmt = stmt.where(ReportRecord.strategy == strategy)
    stmt = stmt.group_by(ReportRecord.instrument, ReportRecord.strategy).order_by(max_balance.desc())
    return _rows(store, stmt)


def win_rate(
    store: ReportStore,
    instrument: Optional[str] = None,
    strategy: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Average and pooled win rates per instrument and schedule, best first."""
    stmt = select(
        ReportRecord.instrument,
        ReportRecord.strategy,
        func.avg(ReportRecord.win_rate).label('avg_win_rate'),
        func.avg(ReportRecord.loss_rate).label('avg_loss_rate'),
        func.sum(ReportRecord.profitable_trades).label('total_profitable_trades'),
        func.sum(ReportRecord.total_trades).label('total_trades'),
    )
    if instrument:
        stmt = stmt.where(ReportRecord.instrument == instrument)
    if strategy:
        stmt = stmt.where(ReportRecord.strategy == strategy)
    stmt = stmt.group_by(ReportRecord.instrument, ReportRecord.strategy)

    rows = _rows(store, stmt)
    for row in rows:
        row['overall_win_rate'] = _overall_rate(row['total_profitable_trades'], row['total_trades'])
    rows.sort(key=lambda r: (r['overall_win_rate'] is None, -(r['overall_win_rate'] or 0.0)))
    return rows


def combined_stats(
    store: ReportStore,
    instruments: Sequence[str] = (),
    strategies: Sequence[str] = (),
    ea_names: Sequence[str] = (),
) -> List[Dict[str, Any]]:
    """Totals per report key across the selected variants, most profitable first."""
    total_profit = func.sum(ReportRecord.net_profit).label('total_net_profit')
    stmt = select(
        ReportRecord.instrument,
        ReportRecord.strategy,
        ReportRecord.ea_name,
        total_profit,
        func.sum(ReportRecord.profitable_trades).label('total_profitable_trades'),
        func.sum(ReportRecord.total_trades).label('total_trades'),
        func.max(ReportRecord.balance_drawdown_maximal).label('max_drawdown'),
        func.max(ReportRecord.equity_drawdown_maximal).label('max_equity_drawdown'),
    )
    if instruments:
        stmt = stmt.where(ReportRecord.instrument.in_(list(instruments)))
    if strategies:
        stmt = stmt.where(ReportRecord.strategy.in_(list(strategies)))
    if ea_names:
        stmt = stmt.where(ReportRecord.ea_name.in_(list(ea_names)))
    stmt = stmt.group_by(ReportRecord.instrument, ReportRecord.strategy, ReportRecord.ea_name)
    stmt = stmt.order_by(total_profit.desc())

    rows = _rows(store, stmt)
    for row in rows:
        row['combined_win_rate'] = _overall_rate(row['total_profitable_trades'], row['total_trades'])
    return rows


def monthly_pnl(
    store: ReportStore,
    instrument: Optional[str] = None,
    strategy: Optional[str] = None,
    ea_name: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Realised profit per calendar month and report key, newest month first."""
    stmt = (
        select(
            DealRecord.time,
            DealRecord.instrument,
            DealRecord.strategy,
            ReportRecord.ea_name,
            DealRecord.profit,
        )
        .join(ReportRecord, DealRecord.report_id == ReportRecord.id)
        .where(DealRecord.profit.is_not(None))
    )
    if instrument:
        stmt = stmt.where(DealRecord.instrument == instrument)
    if strategy:
        stmt = stmt.where(DealRecord.strategy == strategy)
    if ea_name:
        stmt = stmt.where(ReportRecord.ea_name == ea_name)

    df = pd.DataFrame(_rows(store, stmt), columns=['time', 'instrument', 'strategy', 'ea_name', 'profit'])
    if df.empty:
        return []
    df['month'] = pd.to_datetime(df['time']).map(month_start)
    df['profit'] = df['profit'].astype(float)
    grouped = (
        df.groupby(['month', 'instrument', 'strategy', 'ea_name'])['profit']
        .agg(
            monthly_pnl='sum',
            trade_count='count',
            winning_trades=_winning,
            losing_trades=_losing,
        )
        .reset_index()
        .sort_values(['month', 'instrument', 'strategy', 'ea_name'], ascending=[False, True, True, True])
    )
    return [
        {
            'month': row.month.to_pydatetime(),
            'instrument': row.instrument,
            'strategy': row.strategy,
            'ea_name': row.ea_name,
            'monthly_pnl': float(row.monthly_pnl),
            'trade_count': int(row.trade_count),
            'winning_trades': int(row.winning_trades),
            'losing_trades': int(row.losing_trades),
        }
        for row in grouped.itertuples(index=False)
    ]


def balance_series(store: ReportStore, report_id: int) -> List[Dict[str, Any]]:
    """Balance/equity samples of one report in time order."""
    stmt = (
        select(BalanceRecord.date_time, BalanceRecord.balance, BalanceRecord.equity, BalanceRecord.deposit_load)
        .where(BalanceRecord.report_id == report_id)
        .order_by(BalanceRecord.date_time.asc(), BalanceRecord.id.asc())
    )
    return _rows(store, stmt)


def deals(store: ReportStore, report_id: int, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Stored trades of one report in time order."""
    stmt = (
        select(
            DealRecord.deal_number,
            DealRecord.time,
            DealRecord.symbol,
            DealRecord.type,
            DealRecord.direction,
            DealRecord.volume,
            DealRecord.in_price,
            DealRecord.out_price,
            DealRecord.profit,
            DealRecord.commission,
            DealRecord.swap,
            DealRecord.balance,
            DealRecord.comment,
        )
        .where(DealRecord.report_id == report_id)
        .order_by(DealRecord.time.asc(), DealRecord.id.asc())
    )
    if limit:
        stmt = stmt.limit(limit)
    return _rows(store, stmt)
