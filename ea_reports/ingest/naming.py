"""
Directory naming conventions.

Each report lives in its own directory whose name carries the
instrument, the schedule variant and sometimes the expert advisor,
e.g. ``"US30 - daily + london"`` or ``"cyberspace xau daily only"``.
These helpers recover those labels and locate the report files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Tuple


CYBERSPACE_EA = "Cyberspace EA"
BREAKOUT_EA = "Breakout EA by currency pro"

DAILY_LONDON = "Daily + London"
DAILY = "Daily"


def detect_instrument_and_strategy(
    dir_name: str,
    instruments: Iterable[str],
) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(instrument, strategy)`` parsed from a directory name."""
    lowered = dir_name.lower()

    instrument = None
    for ticker in instruments:
        if ticker.lower() in lowered:
            instrument = ticker.lower()
            break

    strategy = None
    if 'daily + london' in lowered or 'daily+london' in lowered:
        strategy = DAILY_LONDON
    elif 'daily' in lowered:
        strategy = DAILY
    return instrument, strategy


def _ea_from_text(text: str) -> Optional[str]:
    lowered = text.lower()
    if 'cyber' in lowered:
        return CYBERSPACE_EA
    if 'breakout' in lowered:
        return BREAKOUT_EA
    return None


def detect_ea_name(
    dir_name: str,
    statement_text: Optional[str] = None,
    default: str = BREAKOUT_EA,
) -> str:
    """Name the expert advisor from the directory name, then the statement."""
    found = _ea_from_text(dir_name)
    if found is None and statement_text:
        found = _ea_from_text(statement_text)
    return found or default


def find_statement_file(dir_path: str) -> Optional[Path]:
    """First ``*.html`` file in `dir_path` whose name contains ``report``."""
    matches = sorted(
        p for p in Path(dir_path).iterdir()
        if p.is_file() and p.suffix.lower() == '.html' and 'report' in p.name.lower()
    )
    return matches[0] if matches else None


def find_balance_file(dir_path: str) -> Optional[Path]:
    """First ``*.csv`` file in `dir_path` whose name contains ``balance``."""
    matches = sorted(
        p for p in Path(dir_path).iterdir()
        if p.is_file() and p.suffix.lower() == '.csv' and 'balance' in p.name.lower()
    )
    return matches[0] if matches else None
