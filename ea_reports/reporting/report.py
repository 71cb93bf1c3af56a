"""
Report export utilities.

This module turns a parsed report into files on disk: JSON documents
of the summary, the reconciled trades and the balance series, a JSON
summary of recomputed statistics and a PNG chart of the balance and
equity curves.  The JSON part can be read back with
`load_parsed_report()` and uploaded later.
"""

from __future__ import annotations

import json
import os
from typing import List
import pandas as pd
import matplotlib

# Use non‑interactive backend for environments without display
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from ..data.errors import ReportFormatError
from ..ingest.models import BalanceSample, CompletedTrade, ParsedReport, ReportSummary
from .metrics import compute_balance_stats, compute_trade_stats


REPORT_FILE = 'report.json'
DEALS_FILE = 'deals.json'
BALANCE_FILE = 'balance.json'
SUMMARY_FILE = 'summary.json'
CHART_FILE = 'balance_curve.png'


def _write_export(path: str, document) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(document, fh, ensure_ascii=False, indent=2)


def _read_export(path: str, required: bool = False):
    if not os.path.exists(path):
        if required:
            raise ReportFormatError(f"{os.path.basename(path)} not found in {os.path.dirname(path)}")
        return None
    with open(path, "r", encoding="utf-8") as fh:
        try:
            return json.load(fh)
        except json.JSONDecodeError as exc:
            raise ReportFormatError(f"{path} is not valid JSON: {exc}") from exc


def export_dir_name(summary: ReportSummary) -> str:
    """Directory name for a report, e.g. ``us30_Daily_+_London``."""
    strategy = '_'.join((summary.strategy or 'unknown').split())
    return f"{summary.instrument or 'unknown'}_{strategy}"


def _plot_balance(samples: List[BalanceSample], path: str) -> None:
    fig, ax = plt.subplots(figsize=(10, 4))
    if samples:
        df = pd.DataFrame([s.to_dict() for s in samples])
        times = pd.to_datetime(df['time'])
        ax.plot(times, df['balance'], linewidth=1.5, label='Balance')
        ax.plot(times, df['equity'], linewidth=1.0, label='Equity')
        ax.set_title('Balance / Equity')
        ax.set_xlabel('Time')
        ax.set_ylabel('Amount')
        ax.legend()
        fig.autofmt_xdate()
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)


def export_parsed_report(parsed: ParsedReport, out_dir: str = "parsed-data") -> str:
    """Write export files for one parsed report.

    Creates ``<out_dir>/<instrument>_<strategy>/`` and writes:

    - `report.json` – statement statistics and labels
    - `deals.json` – reconciled trades
    - `balance.json` – balance/equity samples
    - `summary.json` – labels plus statistics recomputed from the records
    - `balance_curve.png` – line chart of balance and equity

    Returns
    -------
    str
        The directory the files were written to.
    """
    target = os.path.join(out_dir, export_dir_name(parsed.summary))
    os.makedirs(target, exist_ok=True)

    _write_export(os.path.join(target, REPORT_FILE), parsed.summary.to_dict())
    _write_export(os.path.join(target, DEALS_FILE), [t.to_dict() for t in parsed.trades])
    _write_export(os.path.join(target, BALANCE_FILE), [s.to_dict() for s in parsed.balance])

    summary = {
        'instrument': parsed.summary.instrument,
        'strategy': parsed.summary.strategy,
        'ea_name': parsed.summary.ea_name,
        'trades': compute_trade_stats(parsed.trades),
        'balance': compute_balance_stats(parsed.balance),
        'sample_deal': parsed.trades[0].to_dict() if parsed.trades else None,
    }
    _write_export(os.path.join(target, SUMMARY_FILE), summary)

    _plot_balance(parsed.balance, os.path.join(target, CHART_FILE))
    return target


def load_parsed_report(report_dir: str) -> ParsedReport:
    """Read back the JSON files written by `export_parsed_report()`.

    Raises
    ------
    ReportFormatError
        If `report.json` is missing, an export is not valid JSON or a
        record is malformed.
    """
    report = _read_export(os.path.join(report_dir, REPORT_FILE), required=True)
    if not isinstance(report, dict):
        raise ReportFormatError(f"{REPORT_FILE} in {report_dir} is not a JSON object")
    deals = _read_export(os.path.join(report_dir, DEALS_FILE)) or []
    balance = _read_export(os.path.join(report_dir, BALANCE_FILE)) or []
    return ParsedReport(
        summary=ReportSummary.from_dict(report),
        trades=[CompletedTrade.from_dict(d) for d in deals],
        balance=[BalanceSample.from_dict(b) for b in balance],
    )
