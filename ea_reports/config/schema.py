"""
Configuration schema and loader.

This module defines dataclasses that mirror the expected structure of
the YAML configuration file (`config.yaml`).  A helper function
`load_config()` reads a YAML file from disk and returns an instance
of `Config` populated with reasonable defaults for any missing
fields.

Using dataclasses provides type hints and a clear contract for what
values are expected.  When extending the configuration, add new
fields to the appropriate dataclass and update `load_config()`
accordingly.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import List, Dict, Any
import yaml


@dataclass
class DatabaseConfig:
    """Report store connection settings.

    Attributes
    ----------
    url : str
        SQLAlchemy database URL.  SQLite is used when nothing else is
        configured; PostgreSQL works with ``postgresql+psycopg2://...``.
    batch_size : int
        Rows per bulk insert when replacing trades or balance samples.
    echo : bool
        Log every SQL statement issued by the engine.
    """

    url: str = "sqlite:///ea_reports.db"
    batch_size: int = 500
    echo: bool = False


@dataclass
class IngestConfig:
    """Where reports are read from and how they are uploaded.

    Attributes
    ----------
    base_dir : str
        Directory holding one sub-directory per report, each with an
        HTML statement and optionally a balance CSV export.
    output_dir : str
        Root directory for JSON exports written by the ``parse`` command.
    matched_trades_only : bool
        When true the directory uploader stores only trades whose entry
        and exit prices are both known.
    default_ea_name : str
        Expert advisor name used when neither the directory name nor
        the statement mentions one.
    """

    base_dir: str = "reports"
    output_dir: str = "parsed-data"
    matched_trades_only: bool = True
    default_ea_name: str = "Breakout EA by currency pro"


@dataclass
class Config:
    """Root configuration for the report pipeline.

    Attributes
    ----------
    instruments : List[str]
        Instrument vocabulary searched for in directory names and in the
        statement's ``Symbol:`` field (e.g. ``["us30", "us100", "xau"]``).
    strategies : List[str]
        Schedule labels a report may carry.
    database : DatabaseConfig
        Report store configuration.
    ingest : IngestConfig
        Input and export locations.
    """

    instruments: List[str] = field(default_factory=lambda: ["us30", "us100", "xau"])
    strategies: List[str] = field(default_factory=lambda: ["Daily", "Daily + London"])
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)


def _merge_dict(defaults: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries.

    The values in `override` take precedence over those in `defaults`.
    This helper is used when loading YAML into nested dataclasses.
    """
    result: Dict[str, Any] = defaults.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def config_from_dict(raw: Dict[str, Any]) -> Config:
    """Build a `Config` from an already-decoded mapping."""
    defaults: Dict[str, Any] = {
        'instruments': ["us30", "us100", "xau"],
        'strategies': ["Daily", "Daily + London"],
        'database': {
            'url': "sqlite:///ea_reports.db",
            'batch_size': 500,
            'echo': False,
        },
        'ingest': {
            'base_dir': "reports",
            'output_dir': "parsed-data",
            'matched_trades_only': True,
            'default_ea_name': "Breakout EA by currency pro",
        },
    }

    merged = _merge_dict(defaults, raw)
    unknown = sorted(set(merged) - {f.name for f in fields(Config)})
    if unknown:
        raise TypeError(f"Unknown configuration keys: {unknown}")

    database_cfg = DatabaseConfig(**merged['database'])
    database_cfg.batch_size = int(database_cfg.batch_size)
    ingest_cfg = IngestConfig(**merged['ingest'])

    return Config(
        instruments=[str(i).lower() for i in merged.get('instruments', [])],
        strategies=[str(s) for s in merged.get('strategies', [])],
        database=database_cfg,
        ingest=ingest_cfg,
    )


def load_config(path: str) -> Config:
    """Load a configuration file from the given YAML path.

    Parameters
    ----------
    path : str
        Path to the YAML file.

    Returns
    -------
    Config
        A populated configuration object.  Missing fields are filled with
        sensible defaults defined in the dataclasses.
    """
    with open(path, "r", encoding="utf-8") as fh:
        raw: Dict[str, Any] = yaml.safe_load(fh) or {}
    return config_from_dict(raw)
