import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from ea_reports.data.encoding import decode_report_bytes, detect_encoding

import unittest


class TestEncodingDetection(unittest.TestCase):
    def test_utf16_le_marker_is_stripped(self) -> None:
        raw = b"\xff\xfe" + "<DATE>\tÖ".encode("utf-16-le")
        decoded = decode_report_bytes(raw)
        self.assertEqual(decoded.encoding, "utf-16-le")
        self.assertEqual(decoded.text, "<DATE>\tÖ")

    def test_utf16_be_marker_is_stripped(self) -> None:
        raw = b"\xfe\xff" + "Deals".encode("utf-16-be")
        decoded = decode_report_bytes(raw)
        self.assertEqual(decoded.encoding, "utf-16-be")
        self.assertEqual(decoded.text, "Deals")

    def test_no_marker_decodes_as_utf8(self) -> None:
        decoded = decode_report_bytes("Total Net Profit: 1 234.56 €".encode("utf-8"))
        self.assertEqual(decoded.encoding, "utf-8")
        self.assertEqual(decoded.text, "Total Net Profit: 1 234.56 €")

    def test_any_bytes_are_accepted(self) -> None:
        for raw in (b"", b"\xff", b"\xfe", b"\xff\x00\x80abc", b"\xff\xfe\x41"):
            decoded = decode_report_bytes(raw)
            self.assertIsInstance(decoded.text, str)
        self.assertEqual(detect_encoding(b"\xff"), "utf-8")


if __name__ == '__main__':
    unittest.main()
