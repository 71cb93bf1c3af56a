"""
Timestamp utilities for MetaTrader report exports.

Statements and balance exports print local terminal time without any
timezone designator.  All helpers here therefore return naive
timestamps and never try to localise them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
import pandas as pd


DEAL_TIME_FORMATS = ("%Y.%m.%d %H:%M:%S", "%Y.%m.%d %H:%M")
SAMPLE_TIME_FORMAT = "%Y.%m.%d %H:%M"
SAMPLE_DATE_FORMAT = "%Y.%m.%d"


def parse_deal_time(text: str) -> Optional[datetime]:
    """Parse a deal timestamp such as ``"2023.01.03 16:30:05"``.

    Seconds may be omitted.  Returns `None` when the text does not match
    or names an impossible calendar date.
    """
    text = (text or "").strip()
    if not text:
        return None
    for fmt in DEAL_TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_sample_times(values: pd.Series) -> pd.Series:
    """Vectorised parse of balance export timestamps.

    Values are expected as ``YYYY.MM.DD HH:MM``; a bare date is read as
    midnight.  Anything else, including dates such as ``2023.02.30``,
    becomes ``NaT``.
    """
    values = values.astype(str).str.strip()
    ts = pd.to_datetime(values, format=SAMPLE_TIME_FORMAT, errors="coerce")
    missing = ts.isna()
    if missing.any():
        date_only = pd.to_datetime(values[missing], format=SAMPLE_DATE_FORMAT, errors="coerce")
        ts = ts.where(~missing, date_only)
    return ts


def month_start(ts: pd.Timestamp) -> pd.Timestamp:
    """Truncate `ts` to midnight on the first day of its month."""
    if not isinstance(ts, pd.Timestamp):
        ts = pd.Timestamp(ts)
    return ts.to_period("M").to_timestamp()
