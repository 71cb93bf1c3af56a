"""
Deals table extraction.

Reads the execution ledger out of an HTML statement.  The expected row
layout is the one written by the MT5 Strategy Tester:

```
Time | Deal | Symbol | Type | Direction | Volume | Price | Order |
Commission | Swap | Profit | Balance | Comment
```

Rows with fewer cells (the Orders section, sub-totals) are ignored, as
are ``balance`` rows (deposits and withdrawals) and rows whose
timestamp or price cannot be read.  Other numeric cells that cannot be
read, the deal number included, are taken as zero.
"""

from __future__ import annotations

import logging
import math
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from ..ingest.models import CompletedTrade, LedgerEntry
from ..ingest.reconcile import reconcile_deals
from ..utils.timeutils import parse_deal_time


logger = logging.getLogger(__name__)

DEALS_HEADER = "Deals"
MIN_DEAL_CELLS = 13
_WHITESPACE_RE = re.compile(r"\s+")


def _number(text: str) -> Optional[float]:
    try:
        value = float(_WHITESPACE_RE.sub("", text))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _find_deals_table(soup: BeautifulSoup):
    headers = soup.find_all("th")
    for th in headers:
        if th.get_text().strip() == DEALS_HEADER:
            return th.find_parent("table")
    for th in headers:
        if DEALS_HEADER in th.get_text():
            return th.find_parent("table")
    return None


def _parse_row(texts: List[str]) -> Optional[LedgerEntry]:
    time = parse_deal_time(texts[0])
    if time is None:
        return None
    price = _number(texts[6])
    if price is None:
        return None
    return LedgerEntry(
        time=time,
        deal_number=int(_number(texts[1]) or 0),
        symbol=texts[2],
        type=texts[3],
        direction=texts[4],
        volume=_number(texts[5]) or 0.0,
        price=price,
        order=texts[7],
        commission=_number(texts[8]) or 0.0,
        swap=_number(texts[9]) or 0.0,
        profit=_number(texts[10]) or 0.0,
        balance=_number(texts[11]) or 0.0,
        comment=texts[12],
    )


def extract_ledger_entries(html: str) -> List[LedgerEntry]:
    """Return the trading rows of the Deals table in document order.

    An empty list is returned when the statement has no Deals table.
    """
    soup = BeautifulSoup(html, "html.parser")
    table = _find_deals_table(soup)
    if table is None:
        logger.warning("No Deals table found in statement")
        return []

    entries: List[LedgerEntry] = []
    for index, row in enumerate(table.find_all("tr")):
        if index == 0:
            continue
        cells = row.find_all("td")
        if len(cells) < MIN_DEAL_CELLS:
            continue
        texts = [cell.get_text().strip() for cell in cells[:MIN_DEAL_CELLS]]
        if texts[3] == 'balance':
            continue
        entry = _parse_row(texts)
        if entry is None:
            logger.debug("Skipping unreadable deal row: %s", texts)
            continue
        entries.append(entry)
    return entries


def parse_deals(html: str) -> List[CompletedTrade]:
    """Extract the Deals table and reconcile it into completed trades."""
    entries = extract_ledger_entries(html)
    trades = reconcile_deals(entries)
    logger.debug("Reconciled %d deal rows into %d trades", len(entries), len(trades))
    return trades
