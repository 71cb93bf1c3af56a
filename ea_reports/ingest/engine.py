"""
Report ingestion engine.

This module contains the `IngestEngine` class which walks a directory
of report folders, parses each folder's HTML statement and balance
export, and stores the result through a `ReportStore`.  A failure in
one folder is logged and the run carries on with the next one.
"""

from __future__ import annotations

from dataclasses import replace
import logging
from pathlib import Path
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..config.schema import Config
from ..data.balance_csv import parse_balance_csv
from ..data.deals_html import parse_deals
from ..data.encoding import read_report_text
from ..data.statement_html import parse_statement
from ..reporting.report import export_parsed_report, load_parsed_report
from ..storage.database import ReportStore
from .models import ParsedReport
from .naming import (
    detect_ea_name,
    detect_instrument_and_strategy,
    find_balance_file,
    find_statement_file,
)


logger = logging.getLogger(__name__)

RECOVERABLE_ERRORS = (OSError, ValueError, SQLAlchemyError)


def _report_dirs(base_dir: str) -> List[Path]:
    base = Path(base_dir)
    return sorted(p for p in base.iterdir() if p.is_dir() and not p.name.startswith('.'))


def parse_report_directory(dir_path: str, config: Config) -> Optional[ParsedReport]:
    """Parse the statement and balance export of one report folder.

    Returns `None` (after logging why) when the folder name does not
    identify an instrument and schedule, or when it holds no statement.
    """
    folder = Path(dir_path)
    instrument, strategy = detect_instrument_and_strategy(folder.name, config.instruments)
    if not instrument or not strategy:
        logger.info("Skipping %s: could not detect instrument or strategy", folder.name)
        return None
    if strategy not in config.strategies:
        logger.info("Skipping %s: strategy %r is not configured", folder.name, strategy)
        return None

    statement_path = find_statement_file(folder)
    if statement_path is None:
        logger.info("No HTML report found in %s", folder.name)
        return None

    logger.info("Processing %s (instrument=%s, strategy=%s)", folder.name, instrument, strategy)
    decoded = read_report_text(statement_path)
    logger.debug("Decoded %s as %s", statement_path.name, decoded.encoding)

    ea_name = detect_ea_name(folder.name, decoded.text, default=config.ingest.default_ea_name)
    summary = replace(
        parse_statement(decoded.text, config.instruments),
        instrument=instrument,
        strategy=strategy,
        ea_name=ea_name,
    )
    trades = parse_deals(decoded.text)

    balance = []
    balance_path = find_balance_file(folder)
    if balance_path is not None:
        balance = parse_balance_csv(read_report_text(balance_path).text)
    else:
        logger.info("No balance CSV found in %s", folder.name)

    logger.info(
        "Parsed %s: net profit %s, %d trades, %d balance samples",
        folder.name, summary.net_profit, len(trades), len(balance),
    )
    return ParsedReport(summary=summary, trades=trades, balance=balance)


class IngestEngine:
    """Parse report folders and store them.

    Parameters
    ----------
    config : Config
        Pipeline configuration.
    store : ReportStore or None
        An opened report store.  Only `export()` works without one.
    """

    def __init__(self, config: Config, store: Optional[ReportStore] = None) -> None:
        self.config = config
        self.store = store

    def _require_store(self) -> ReportStore:
        if self.store is None:
            raise RuntimeError("IngestEngine needs a ReportStore to upload reports.")
        return self.store

    def upload(self, parsed: ParsedReport, matched_only: Optional[bool] = None) -> int:
        """Store one parsed report and replace its trades and balance series.

        Returns
        -------
        int
            The stored report's identifier.
        """
        store = self._require_store()
        if matched_only is None:
            matched_only = self.config.ingest.matched_trades_only

        report_id = store.upsert_report(parsed.summary)
        trades = [t for t in parsed.trades if t.is_matched] if matched_only else parsed.trades
        store.replace_trades(report_id, parsed.summary, trades)
        store.replace_balance(report_id, parsed.summary, parsed.balance)
        logger.info(
            "Stored report %d (%s / %s / %s): %d trades, %d balance samples",
            report_id, parsed.summary.instrument, parsed.summary.strategy,
            parsed.summary.ea_name, len(trades), len(parsed.balance),
        )
        return report_id

    def run(self, base_dir: Optional[str] = None) -> int:
        """Parse and upload every report folder under `base_dir`.

        Returns
        -------
        int
            Number of reports stored.
        """
        base_dir = base_dir or self.config.ingest.base_dir
        stored = 0
        for folder in _report_dirs(base_dir):
            try:
                parsed = parse_report_directory(str(folder), self.config)
                if parsed is None:
                    continue
                self.upload(parsed)
                stored += 1
            except RECOVERABLE_ERRORS as exc:
                logger.error("Failed to ingest %s: %s", folder.name, exc)
        logger.info("Upload finished: %d reports stored", stored)
        return stored

    def export(self, base_dir: Optional[str] = None, out_dir: Optional[str] = None) -> List[str]:
        """Parse every report folder and write JSON exports instead of storing.

        Returns
        -------
        list of str
            Export directories written.
        """
        base_dir = base_dir or self.config.ingest.base_dir
        out_dir = out_dir or self.config.ingest.output_dir
        written: List[str] = []
        for folder in _report_dirs(base_dir):
            try:
                parsed = parse_report_directory(str(folder), self.config)
                if parsed is None:
                    continue
                target = export_parsed_report(parsed, out_dir)
                logger.info("Saved %s export to %s", folder.name, target)
                written.append(target)
            except RECOVERABLE_ERRORS as exc:
                logger.error("Failed to export %s: %s", folder.name, exc)
        return written

    def upload_exports(self, out_dir: Optional[str] = None) -> int:
        """Upload previously exported reports, keeping every exported trade."""
        out_dir = out_dir or self.config.ingest.output_dir
        stored = 0
        for folder in _report_dirs(out_dir):
            try:
                parsed = load_parsed_report(str(folder))
                self.upload(parsed, matched_only=False)
                stored += 1
            except RECOVERABLE_ERRORS as exc:
                logger.error("Failed to upload export %s: %s", folder.name, exc)
        return stored
