import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)
if CURRENT_DIR not in sys.path:
    sys.path.insert(0, CURRENT_DIR)

from ea_reports.data.statement_html import (
    extract_count_and_percentage,
    extract_number,
    extract_percentage,
    parse_statement,
)
from report_fixtures import DEFAULT_STATS, statement_html

import unittest


DRAWDOWN_LABELS = [label for label in DEFAULT_STATS if "Drawdown" in label]


class TestValueExtraction(unittest.TestCase):
    def test_percentage_ignores_bracketed_amount(self) -> None:
        for _ in range(2):
            self.assertEqual(extract_percentage("4.89% (2 904.80)"), 4.89)

    def test_percentage_absent(self) -> None:
        self.assertIsNone(extract_percentage("2 904.80"))
        self.assertIsNone(extract_percentage(None))
        self.assertIsNone(extract_percentage("250.00%"))

    def test_number_drops_thousand_separators(self) -> None:
        self.assertEqual(extract_number("-1 234.56"), -1234.56)
        self.assertEqual(extract_number("2 904.80 (4.89%)"), 2904.80)
        self.assertIsNone(extract_number("n/a"))

    def test_composite_cell(self) -> None:
        self.assertEqual(extract_count_and_percentage("90 (60.00%)"), (90, 60.0))
        self.assertEqual(extract_count_and_percentage("0.00%"), (None, 0.0))


class TestParseStatement(unittest.TestCase):
    def test_full_statement(self) -> None:
        summary = parse_statement(statement_html())
        self.assertEqual(summary.instrument, "us30")
        self.assertIsNone(summary.strategy)
        self.assertIsNone(summary.ea_name)
        self.assertAlmostEqual(summary.net_profit, 12345.67)
        self.assertAlmostEqual(summary.balance_drawdown_absolute, 120.50)
        self.assertAlmostEqual(summary.equity_drawdown_absolute, 150.25)
        self.assertAlmostEqual(summary.balance_drawdown_maximal, 2904.80)
        self.assertAlmostEqual(summary.equity_drawdown_maximal, 3000.00)
        self.assertAlmostEqual(summary.balance_drawdown_relative, 4.89)
        self.assertAlmostEqual(summary.equity_drawdown_relative, 5.12)
        self.assertEqual(summary.total_trades, 150)
        self.assertEqual(summary.profitable_trades, 90)
        self.assertAlmostEqual(summary.win_rate, 60.0)
        self.assertAlmostEqual(summary.loss_rate, 40.0)
        self.assertEqual(summary.max_consecutive_wins, 7)
        self.assertEqual(summary.max_consecutive_losses, 4)
        self.assertAlmostEqual(summary.consecutive_wins, 2.0)
        self.assertAlmostEqual(summary.consecutive_losses, 1.0)

    def test_missing_drawdown_section_only_affects_drawdowns(self) -> None:
        full = parse_statement(statement_html())
        stats = {k: v for k, v in DEFAULT_STATS.items() if k not in DRAWDOWN_LABELS}
        partial = parse_statement(statement_html(stats=stats))

        drawdown_fields = [
            'balance_drawdown_absolute', 'equity_drawdown_absolute',
            'balance_drawdown_maximal', 'equity_drawdown_maximal',
            'balance_drawdown_relative', 'equity_drawdown_relative',
        ]
        for name in drawdown_fields:
            self.assertIsNone(getattr(partial, name), name)
        for name, value in full.to_dict().items():
            if name not in drawdown_fields:
                self.assertEqual(getattr(partial, name), value, name)

    def test_unknown_symbol_leaves_instrument_unset(self) -> None:
        stats = dict(DEFAULT_STATS)
        stats["Symbol:"] = "EURUSD"
        self.assertIsNone(parse_statement(statement_html(stats=stats)).instrument)

    def test_instrument_vocabulary_is_case_insensitive(self) -> None:
        stats = dict(DEFAULT_STATS)
        stats["Symbol:"] = "Xauusd"
        self.assertEqual(parse_statement(statement_html(stats=stats)).instrument, "xau")

    def test_document_without_statistics(self) -> None:
        summary = parse_statement("<html><body><p>empty</p></body></html>")
        self.assertTrue(all(v is None for v in summary.to_dict().values()))


if __name__ == '__main__':
    unittest.main()
