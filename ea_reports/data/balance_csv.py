"""
Balance/equity export loader.

The terminal's "Balance" export is a tab-separated file with a header
row such as:

```
<DATE>	<BALANCE>	<EQUITY>	<DEPOSIT LOAD>
2023.01.02 00:00	10000.00	10000.00	0.0000
```

Columns are looked up by name, not position.  `<DATE>`, `<BALANCE>`
and `<EQUITY>` are required; `<DEPOSIT LOAD>` (or `<DEPOSIT_LOAD>`) is
optional.  Imperfect files are tolerated: rows with the wrong number
of fields (compared with the header) or an unreadable date are
skipped, unreadable numbers are read as zero.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import List, Optional

import pandas as pd

from ..ingest.models import BalanceSample
from ..utils.timeutils import parse_sample_times


logger = logging.getLogger(__name__)

DATE_COLUMN = "<DATE>"
BALANCE_COLUMN = "<BALANCE>"
EQUITY_COLUMN = "<EQUITY>"
DEPOSIT_LOAD_COLUMNS = ("<DEPOSIT LOAD>", "<DEPOSIT_LOAD>")


def _numeric(values: pd.Series) -> pd.Series:
    cleaned = values.fillna("").astype(str).str.replace(r"\s", "", regex=True)
    numbers = pd.to_numeric(cleaned, errors="coerce")
    return numbers.replace([float("inf"), float("-inf")], float("nan")).fillna(0.0)


def _deposit_load_column(columns: List[str]) -> Optional[str]:
    for name in DEPOSIT_LOAD_COLUMNS:
        if name in columns:
            return name
    return None


def _well_formed_lines(text: str) -> str:
    lines = pd.Series(text.splitlines(), dtype=str)
    lines = lines[lines.str.strip() != ""]
    if lines.empty:
        return ""
    field_counts = lines.str.count("\t") + 1
    well_formed = field_counts == field_counts.iloc[0]
    skipped = int((~well_formed).sum())
    if skipped:
        logger.debug("Skipping %d balance rows with the wrong number of fields", skipped)
    return "\n".join(lines[well_formed])


def parse_balance_csv(text: str) -> List[BalanceSample]:
    """Parse decoded balance export text into samples, in file order.

    Parameters
    ----------
    text : str
        Decoded CSV text including the header row.

    Returns
    -------
    list of BalanceSample
        One sample per row carrying a valid date and both balance and
        equity fields.
    """
    try:
        df = pd.read_csv(
            io.StringIO(_well_formed_lines(text)),
            sep="\t",
            dtype=str,
            keep_default_na=False,
            quoting=csv.QUOTE_NONE,
            skip_blank_lines=True,
            on_bad_lines="skip",
            index_col=False,
        )
    except pd.errors.EmptyDataError:
        logger.warning("Balance export is empty")
        return []
    except pd.errors.ParserError as exc:
        logger.warning("Balance export could not be read: %s", exc)
        return []
    df.columns = [str(c).strip().lstrip("\ufeff") for c in df.columns]

    required = [DATE_COLUMN, BALANCE_COLUMN, EQUITY_COLUMN]
    missing = [c for c in required if c not in df.columns]
    if missing:
        logger.warning("Balance export is missing columns %s (found %s)", missing, list(df.columns))
        return []

    dates = df[DATE_COLUMN].astype(str).str.strip()
    df = df[dates != ""]
    if df.empty:
        return []

    times = parse_sample_times(df[DATE_COLUMN])
    valid = times.notna()
    skipped = int((~valid).sum())
    if skipped:
        logger.debug("Skipping %d balance rows with unreadable dates", skipped)

    balances = _numeric(df[BALANCE_COLUMN])
    equities = _numeric(df[EQUITY_COLUMN])
    load_column = _deposit_load_column(list(df.columns))
    if load_column is not None:
        loads = _numeric(df[load_column])
    else:
        loads = pd.Series(0.0, index=df.index)

    samples: List[BalanceSample] = []
    for idx in df.index[valid.to_numpy()]:
        samples.append(
            BalanceSample(
                time=times.loc[idx].to_pydatetime(),
                balance=float(balances.loc[idx]),
                equity=float(equities.loc[idx]),
                deposit_load=float(loads.loc[idx]),
            )
        )
    return samples
