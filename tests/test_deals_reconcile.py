import os
import sys
from datetime import datetime

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)
if CURRENT_DIR not in sys.path:
    sys.path.insert(0, CURRENT_DIR)

from ea_reports.data.deals_html import extract_ledger_entries, parse_deals
from ea_reports.ingest.models import LedgerEntry
from ea_reports.ingest.reconcile import ReconcileState, reconcile_deals, reconcile_step
from report_fixtures import deal_row, statement_html

import unittest


def entry(direction: str, order: str, price: float, deal: int = 1, commission: float = 0.0,
          swap: float = 0.0, profit: float = 0.0) -> LedgerEntry:
    return LedgerEntry(
        time=datetime(2023, 1, 2, 10, deal), deal_number=deal, symbol="US30.cash",
        type="buy", direction=direction, volume=1.0, price=price, order=order,
        commission=commission, swap=swap, profit=profit, balance=10000.0, comment="",
    )


class TestReconcile(unittest.TestCase):
    def test_matched_pair_sums_costs(self) -> None:
        trades = reconcile_deals([
            entry('in', '1', 100.0, deal=2, commission=-1.5, swap=-0.25),
            entry('out', '1', 110.0, deal=3, commission=-1.5, swap=-0.5, profit=50.0),
        ])
        self.assertEqual(len(trades), 1)
        trade = trades[0]
        self.assertEqual(trade.in_price, 100.0)
        self.assertEqual(trade.out_price, 110.0)
        self.assertEqual(trade.profit, 50.0)
        self.assertEqual(trade.deal_number, 3)
        self.assertAlmostEqual(trade.commission, -3.0)
        self.assertAlmostEqual(trade.swap, -0.75)
        self.assertTrue(trade.is_matched)

    def test_unmatched_close_keeps_own_costs(self) -> None:
        trades = reconcile_deals([entry('out', '2', 95.0, commission=-2.0, profit=-5.0)])
        self.assertEqual(len(trades), 1)
        self.assertIsNone(trades[0].in_price)
        self.assertEqual(trades[0].out_price, 95.0)
        self.assertEqual(trades[0].profit, -5.0)
        self.assertAlmostEqual(trades[0].commission, -2.0)
        self.assertFalse(trades[0].is_matched)

    def test_opening_leg_is_consumed_once(self) -> None:
        trades = reconcile_deals([
            entry('in', '5', 100.0, deal=1, commission=-1.0),
            entry('out', '5', 101.0, deal=2, commission=-1.0),
            entry('out', '5', 102.0, deal=3, commission=-1.0),
        ])
        self.assertEqual([t.in_price for t in trades], [100.0, None])
        self.assertAlmostEqual(trades[1].commission, -1.0)

    def test_reopened_order_overwrites_pending_leg(self) -> None:
        trades = reconcile_deals([
            entry('in', '6', 100.0, deal=1),
            entry('in', '6', 105.0, deal=2),
            entry('out', '6', 110.0, deal=3),
        ])
        self.assertEqual(trades[0].in_price, 105.0)

    def test_other_directions_and_open_legs_are_not_emitted(self) -> None:
        trades = reconcile_deals([
            entry('in/out', '7', 100.0),
            entry('', '8', 100.0),
            entry('in', '9', 100.0),
        ])
        self.assertEqual(trades, [])

    def test_step_tracks_open_legs(self) -> None:
        trade, state = reconcile_step(entry('in', '1', 100.0), ReconcileState())
        self.assertIsNone(trade)
        self.assertIn('1', state.open_legs)
        trade, state = reconcile_step(entry('out', '1', 101.0), state)
        self.assertIsNotNone(trade)
        self.assertEqual(state.open_legs, {})


class TestDealsTable(unittest.TestCase):
    def _html(self) -> str:
        return statement_html(deals=[
            deal_row("2023.01.02 00:00:00", 1, "balance", "", "", "", profit="10 000.00"),
            deal_row("2023.01.02 10:00:00", 2, "buy", "in", "100.00", "1", commission="-1.50"),
            deal_row("2023.01.02 11:00:00", 3, "sell", "out", "110.00", "1",
                     commission="-1.50", profit="50.00", balance="10 047.00"),
            deal_row("2023.01.03 09:00:00", 4, "balance", "out", "1.00", "1", profit="-100.00"),
            deal_row("not a date", 5, "buy", "in", "100.00", "3"),
            deal_row("2023.01.03 10:00:00", 6, "buy", "in", "", "4"),
            deal_row("2023.01.04 10:00:00", 7, "buy", "out", "95.00", "2",
                     commission="-2.00", profit="-5.00", swap="x"),
            deal_row("2023.01.05 10:00:00", 8, "sell", "in", "120.00", "9"),
        ])

    def test_rows_are_filtered(self) -> None:
        entries = extract_ledger_entries(self._html())
        self.assertEqual([e.deal_number for e in entries], [2, 3, 7, 8])
        self.assertTrue(all(e.type != 'balance' for e in entries))
        self.assertEqual(entries[2].swap, 0.0)
        self.assertEqual(entries[1].balance, 10047.0)
        self.assertEqual(entries[0].time, datetime(2023, 1, 2, 10, 0, 0))

    def test_parse_deals(self) -> None:
        trades = parse_deals(self._html())
        self.assertEqual(len(trades), 2)
        matched, unmatched = trades
        self.assertEqual((matched.in_price, matched.out_price, matched.profit), (100.0, 110.0, 50.0))
        self.assertAlmostEqual(matched.commission, -3.0)
        self.assertEqual(matched.time, datetime(2023, 1, 2, 11, 0, 0))
        self.assertEqual((unmatched.in_price, unmatched.out_price, unmatched.profit), (None, 95.0, -5.0))
        self.assertAlmostEqual(unmatched.commission, -2.0)

    def test_single_pair_scenario(self) -> None:
        html = statement_html(deals=[
            deal_row("2023.01.02 10:00:00", 2, "buy", "in", "100", "1"),
            deal_row("2023.01.02 11:00:00", 3, "sell", "out", "110", "1", profit="50"),
        ])
        trades = parse_deals(html)
        self.assertEqual(len(trades), 1)
        self.assertEqual((trades[0].in_price, trades[0].out_price, trades[0].profit), (100.0, 110.0, 50.0))

    def test_blank_deal_number_keeps_closing_leg(self) -> None:
        html = statement_html(deals=[
            deal_row("2023.01.02 10:00:00", 2, "buy", "in", "100", "1"),
            deal_row("2023.01.02 11:00:00", "", "sell", "out", "110", "1", profit="50"),
        ])
        trades = parse_deals(html)
        self.assertEqual(len(trades), 1)
        self.assertEqual(trades[0].deal_number, 0)
        self.assertEqual((trades[0].in_price, trades[0].out_price), (100.0, 110.0))

    def test_sibling_tables_are_ignored(self) -> None:
        orders = (
            "<table><tr><th>Orders</th></tr>"
            + "<tr>" + "".join(f"<td>{c}</td>" for c in deal_row(
                "2023.01.01 10:00:00", 99, "sell", "out", "1.00", "77")) + "</tr>"
            + "</table>"
        )
        html = statement_html(deals=[], extra_tables=orders)
        self.assertEqual(parse_deals(html), [])

    def test_missing_deals_table(self) -> None:
        self.assertEqual(parse_deals(statement_html(include_deals_table=False)), [])


if __name__ == '__main__':
    unittest.main()
