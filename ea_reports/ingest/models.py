"""
Report, ledger and balance models.

These dataclasses represent the records passed between the parsers,
the reconciler, the report store and the JSON exports.  Keeping them
in a separate module improves readability and makes unit testing
easier.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..data.errors import ReportFormatError


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


def _from_iso(value: Any, key: str) -> datetime:
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise ReportFormatError(f"Invalid timestamp for {key!r}: {value!r}") from exc


def _require(data: Dict[str, Any], *keys: str) -> None:
    missing = [k for k in keys if k not in data]
    if missing:
        raise ReportFormatError(f"Missing keys: {missing}")


@dataclass
class ReportSummary:
    """Statistics of one instrument × schedule × expert advisor run.

    Every numeric field is either a finite number or `None` when the
    statement did not carry it.  Percentages lie in ``[0, 100]``.
    """
    instrument: Optional[str] = None
    strategy: Optional[str] = None  # schedule label, e.g. 'Daily + London'
    ea_name: Optional[str] = None
    net_profit: Optional[float] = None
    balance_drawdown_absolute: Optional[float] = None
    balance_drawdown_maximal: Optional[float] = None
    balance_drawdown_relative: Optional[float] = None
    equity_drawdown_absolute: Optional[float] = None
    equity_drawdown_maximal: Optional[float] = None
    equity_drawdown_relative: Optional[float] = None
    total_trades: Optional[int] = None
    profitable_trades: Optional[int] = None
    win_rate: Optional[float] = None
    loss_rate: Optional[float] = None
    max_consecutive_wins: Optional[int] = None
    max_consecutive_losses: Optional[int] = None
    consecutive_wins: Optional[float] = None  # average streak length
    consecutive_losses: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportSummary":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class LedgerEntry:
    """One row of the statement's Deals table."""
    time: datetime
    deal_number: int
    symbol: str
    type: str
    direction: str  # 'in', 'out' or something else ('in/out', '')
    volume: float
    price: float
    order: str
    commission: float
    swap: float
    profit: float
    balance: float
    comment: str


@dataclass
class CompletedTrade:
    """A closing leg, joined with its opening leg when one was seen.

    `in_price` is `None` when the statement holds no opening leg for the
    order (e.g. the reporting window starts mid-position).
    """
    deal_number: int
    time: datetime
    symbol: str
    type: str
    direction: str
    volume: float
    in_price: Optional[float]
    out_price: float
    profit: float
    commission: float
    swap: float
    balance: float
    comment: str

    @property
    def is_matched(self) -> bool:
        return self.in_price is not None and self.out_price is not None

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['time'] = _iso(self.time)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompletedTrade":
        _require(data, 'deal_number', 'time', 'out_price')
        return cls(
            deal_number=int(data['deal_number']),
            time=_from_iso(data['time'], 'time'),
            symbol=data.get('symbol') or "",
            type=data.get('type') or "",
            direction=data.get('direction') or "",
            volume=float(data.get('volume') or 0.0),
            in_price=None if data.get('in_price') is None else float(data['in_price']),
            out_price=float(data['out_price']),
            profit=float(data.get('profit') or 0.0),
            commission=float(data.get('commission') or 0.0),
            swap=float(data.get('swap') or 0.0),
            balance=float(data.get('balance') or 0.0),
            comment=data.get('comment') or "",
        )


@dataclass
class BalanceSample:
    """Account balance, equity and deposit load at one point in time."""
    time: datetime
    balance: float
    equity: float
    deposit_load: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'time': _iso(self.time),
            'balance': self.balance,
            'equity': self.equity,
            'deposit_load': self.deposit_load,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BalanceSample":
        _require(data, 'time', 'balance', 'equity')
        return cls(
            time=_from_iso(data['time'], 'time'),
            balance=float(data['balance']),
            equity=float(data['equity']),
            deposit_load=float(data.get('deposit_load') or 0.0),
        )


@dataclass
class ParsedReport:
    """Everything extracted from one report directory."""
    summary: ReportSummary
    trades: List[CompletedTrade] = field(default_factory=list)
    balance: List[BalanceSample] = field(default_factory=list)
