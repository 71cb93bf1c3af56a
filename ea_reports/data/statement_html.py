"""
Strategy Tester statement parser.

An MT5 statement is a loose HTML table of ``label: | value`` cell
pairs.  This module walks the document once, builds a mapping from
each label cell to the text of the cell that follows it, and then reads
a fixed set of known labels out of that mapping.  Labels that are not
present simply yield `None`: statements from different terminal builds
omit or reorder whole sections.
"""

from __future__ import annotations

from enum import Enum
import logging
import math
import re
from typing import Dict, Iterable, Optional, Tuple

from bs4 import BeautifulSoup

from ..ingest.models import ReportSummary


logger = logging.getLogger(__name__)

_PERCENT_RE = re.compile(r"([\d.]+)%")
_NUMBER_RE = re.compile(r"-?[\d.]+")
_LEADING_COUNT_RE = re.compile(r"(\d+)\s*\(")
_INTEGER_RE = re.compile(r"(\d+)")
_WHITESPACE_RE = re.compile(r"\s+")


class StatementLabel(str, Enum):
    """Labels of the statement cells the parser knows how to read."""
    SYMBOL = "Symbol:"
    NET_PROFIT = "Total Net Profit:"
    BALANCE_DD_ABSOLUTE = "Balance Drawdown Absolute:"
    EQUITY_DD_ABSOLUTE = "Equity Drawdown Absolute:"
    BALANCE_DD_MAXIMAL = "Balance Drawdown Maximal:"
    EQUITY_DD_MAXIMAL = "Equity Drawdown Maximal:"
    BALANCE_DD_RELATIVE = "Balance Drawdown Relative:"
    EQUITY_DD_RELATIVE = "Equity Drawdown Relative:"
    TOTAL_TRADES = "Total Trades:"
    PROFIT_TRADES = "Profit Trades (% of total):"
    LOSS_TRADES = "Loss Trades (% of total):"
    MAX_CONSECUTIVE_WINS = "Maximum consecutive wins ($):"
    MAX_CONSECUTIVE_LOSSES = "Maximum consecutive losses ($):"
    AVG_CONSECUTIVE_WINS = "Average consecutive wins:"
    AVG_CONSECUTIVE_LOSSES = "Average consecutive losses:"


def _cell_text(cell) -> str:
    return _WHITESPACE_RE.sub(" ", cell.get_text()).strip()


def _to_float(token: str) -> Optional[float]:
    try:
        value = float(token)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def extract_percentage(text: Optional[str]) -> Optional[float]:
    """Return the first ``<number>%`` in `text`.

    ``"4.89% (2 904.80)"`` yields ``4.89``; the bracketed money amount is
    never used.  Values outside ``[0, 100]`` are treated as absent.
    """
    if not text:
        return None
    match = _PERCENT_RE.search(text)
    if not match:
        return None
    value = _to_float(match.group(1))
    if value is None or not 0.0 <= value <= 100.0:
        return None
    return value


def extract_number(text: Optional[str]) -> Optional[float]:
    """Return the first signed decimal in `text` once whitespace is removed.

    Statements group thousands with spaces (``"-1 234.56"``), so the
    spaces are dropped before matching.
    """
    if not text:
        return None
    match = _NUMBER_RE.search(_WHITESPACE_RE.sub("", text))
    return _to_float(match.group(0)) if match else None


def extract_count_and_percentage(text: Optional[str]) -> Tuple[Optional[int], Optional[float]]:
    """Split a composite cell such as ``"12 (54.55%)"`` into count and percent."""
    if not text:
        return None, None
    match = _LEADING_COUNT_RE.search(text)
    count = int(match.group(1)) if match else None
    return count, extract_percentage(text)


def _leading_integer(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    match = _INTEGER_RE.search(text)
    return int(match.group(1)) if match else None


def _as_int(value: Optional[float]) -> Optional[int]:
    return int(value) if value is not None else None


class StatementCells:
    """Label → value lookup built from one walk over the statement."""

    def __init__(self, pairs: Iterable[Tuple[str, str]]) -> None:
        self._pairs: Dict[str, str] = {}
        for label, value in pairs:
            # First occurrence wins, matching document order.
            self._pairs.setdefault(label, value)

    @classmethod
    def from_html(cls, html: str) -> "StatementCells":
        soup = BeautifulSoup(html, "html.parser")
        pairs = []
        for cell in soup.find_all("td"):
            # Layout cells wrapping a nested table are not labels.
            if cell.find("td") is not None:
                continue
            neighbour = cell.find_next_sibling("td")
            if neighbour is None:
                continue
            label = _cell_text(cell)
            if label:
                pairs.append((label, _cell_text(neighbour)))
        return cls(pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def get(self, label: StatementLabel) -> Optional[str]:
        """Value next to the cell equal to `label`, else the first cell containing it."""
        key = label.value
        if key in self._pairs:
            return self._pairs[key]
        for text, value in self._pairs.items():
            if key in text:
                return value
        return None


def detect_instrument(symbol_text: Optional[str], instruments: Iterable[str]) -> Optional[str]:
    """Find the first vocabulary ticker inside the statement's symbol value."""
    if not symbol_text:
        return None
    lowered = symbol_text.lower()
    for ticker in instruments:
        if ticker.lower() in lowered:
            return ticker.lower()
    return None


def parse_statement(html: str, instruments: Iterable[str] = ("us30", "us100", "xau")) -> ReportSummary:
    """Extract summary statistics from a decoded HTML statement.

    Parameters
    ----------
    html : str
        Decoded statement text.
    instruments : iterable of str
        Ticker vocabulary searched for in the ``Symbol:`` value.

    Returns
    -------
    ReportSummary
        Summary with `strategy` and `ea_name` unset; `instrument` is set
        only when one of the tickers was found.
    """
    cells = StatementCells.from_html(html)
    if not len(cells):
        logger.warning("Statement contains no label/value cells")

    profitable_trades, win_rate = extract_count_and_percentage(cells.get(StatementLabel.PROFIT_TRADES))

    summary = ReportSummary(
        instrument=detect_instrument(cells.get(StatementLabel.SYMBOL), instruments),
        net_profit=extract_number(cells.get(StatementLabel.NET_PROFIT)),
        balance_drawdown_absolute=extract_number(cells.get(StatementLabel.BALANCE_DD_ABSOLUTE)),
        equity_drawdown_absolute=extract_number(cells.get(StatementLabel.EQUITY_DD_ABSOLUTE)),
        balance_drawdown_maximal=extract_number(cells.get(StatementLabel.BALANCE_DD_MAXIMAL)),
        equity_drawdown_maximal=extract_number(cells.get(StatementLabel.EQUITY_DD_MAXIMAL)),
        balance_drawdown_relative=extract_percentage(cells.get(StatementLabel.BALANCE_DD_RELATIVE)),
        equity_drawdown_relative=extract_percentage(cells.get(StatementLabel.EQUITY_DD_RELATIVE)),
        total_trades=_as_int(extract_number(cells.get(StatementLabel.TOTAL_TRADES))),
        profitable_trades=profitable_trades,
        win_rate=win_rate,
        loss_rate=extract_percentage(cells.get(StatementLabel.LOSS_TRADES)),
        max_consecutive_wins=_leading_integer(cells.get(StatementLabel.MAX_CONSECUTIVE_WINS)),
        max_consecutive_losses=_leading_integer(cells.get(StatementLabel.MAX_CONSECUTIVE_LOSSES)),
        consecutive_wins=extract_number(cells.get(StatementLabel.AVG_CONSECUTIVE_WINS)),
        consecutive_losses=extract_number(cells.get(StatementLabel.AVG_CONSECUTIVE_LOSSES)),
    )
    logger.debug("Parsed statement summary: %s", summary)
    return summary
