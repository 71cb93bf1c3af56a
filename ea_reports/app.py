"""
Application entry point.

This module defines a simple command‑line interface for the report
pipeline.  It leverages the modules under `ea_reports/` to load
configuration, parse report folders, export them as JSON and store
them in the report database.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .config.schema import Config, load_config
from .ingest.engine import IngestEngine
from .storage.database import ReportStore
from .storage.queries import all_reports


COMMANDS = ['setup-db', 'parse', 'upload', 'upload-json', 'summary']


def _setup_logging(verbose: bool) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def _open_store(config: Config) -> ReportStore:
    store = ReportStore(
        config.database.url,
        batch_size=config.database.batch_size,
        echo=config.database.echo,
    )
    return store.open()


def _log_summary(store: ReportStore) -> None:
    reports = all_reports(store)
    if not reports:
        logging.info("No reports found in database. Run 'upload' to add some.")
        return
    logging.info("Found %d report(s) in database:", len(reports))
    for report in reports:
        logging.info(
            "  %s - %s (%s): net profit %s, win rate %s%%, total trades %s",
            report['instrument'].upper(), report['strategy'], report['ea_name'],
            report['net_profit'] if report['net_profit'] is not None else 'N/A',
            report['win_rate'] if report['win_rate'] is not None else 'N/A',
            report['total_trades'] if report['total_trades'] is not None else 'N/A',
        )


def main(argv: Optional[List[str]] = None) -> int:
    """Parse command‑line arguments and dispatch to the requested command."""
    parser = argparse.ArgumentParser(description="Expert advisor report pipeline")
    parser.add_argument('command', choices=COMMANDS, help="Command to run")
    parser.add_argument('--config', default='config.yaml', help="Path to configuration YAML file")
    parser.add_argument('--base-dir', help="Directory holding one folder per report")
    parser.add_argument('--output-dir', help="Directory for JSON exports")
    parser.add_argument('--database-url', help="SQLAlchemy database URL")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    try:
        config = load_config(args.config)
    except (OSError, TypeError, ValueError) as exc:
        logging.error("Could not load configuration %s: %s", args.config, exc)
        return 1
    # Override settings from CLI if provided
    if args.base_dir:
        config.ingest.base_dir = args.base_dir
    if args.output_dir:
        config.ingest.output_dir = args.output_dir
    if args.database_url:
        config.database.url = args.database_url

    if args.command == 'parse':
        logging.info("Parsing reports under %s...", config.ingest.base_dir)
        written = IngestEngine(config).export()
        logging.info("Parsing complete. %d export(s) saved to %s", len(written), config.ingest.output_dir)
        return 0

    with _open_store(config) as store:
        if args.command == 'setup-db':
            store.create_schema()
        elif args.command == 'upload':
            store.create_schema()
            logging.info("Uploading reports under %s...", config.ingest.base_dir)
            IngestEngine(config, store).run()
        elif args.command == 'upload-json':
            store.create_schema()
            logging.info("Uploading exports under %s...", config.ingest.output_dir)
            stored = IngestEngine(config, store).upload_exports()
            logging.info("Upload complete. %d report(s) stored", stored)
        else:
            _log_summary(store)
    return 0


if __name__ == '__main__':
    sys.exit(main())
