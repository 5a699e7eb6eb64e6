from __future__ import annotations

import unittest

from app.exporting.text_utils import (
    TRUNCATION_MARKER,
    estimate_byte_size,
    exceeds_max_length,
    format_bytes,
    normalize_text,
    strip_invalid_xml_chars,
    truncate_text,
)


class TestTruncateText(unittest.TestCase):
    def test_short_text_is_returned_unchanged(self) -> None:
        result = truncate_text("short text", 100)

        self.assertEqual(result.text, "short text")
        self.assertFalse(result.truncated)

    def test_none_is_treated_as_empty(self) -> None:
        result = truncate_text(None, 10)

        self.assertEqual(result.text, "")
        self.assertFalse(result.truncated)

    def test_breaks_at_last_whitespace_before_limit(self) -> None:
        text = "alpha beta gamma delta"

        result = truncate_text(text, 13)

        self.assertTrue(result.truncated)
        self.assertEqual(result.text, "alpha beta" + TRUNCATION_MARKER)

    def test_cuts_exactly_at_limit_without_nearby_whitespace(self) -> None:
        text = "x" * 300

        result = truncate_text(text, 150)

        self.assertEqual(result.text, "x" * 150 + TRUNCATION_MARKER)

    def test_whitespace_further_back_than_lookback_is_ignored(self) -> None:
        text = "word " + "y" * 400

        result = truncate_text(text, 200)

        self.assertTrue(result.text.startswith("word " + "y" * 195))
        self.assertTrue(result.text.endswith(TRUNCATION_MARKER))


class TestTextHelpers(unittest.TestCase):
    def test_estimate_byte_size_counts_utf8_bytes(self) -> None:
        self.assertEqual(estimate_byte_size("abc"), 3)
        self.assertEqual(estimate_byte_size("é"), 2)
        self.assertEqual(estimate_byte_size(None), 0)

    def test_exceeds_max_length(self) -> None:
        self.assertTrue(exceeds_max_length("abcdef", 5))
        self.assertFalse(exceeds_max_length("abcde", 5))
        self.assertFalse(exceeds_max_length(None, 0))

    def test_normalize_text_collapses_blank_lines_and_line_endings(self) -> None:
        raw = "  first\r\n\r\n\r\n\r\nsecond\rthird  "

        self.assertEqual(normalize_text(raw), "first\n\nsecond\nthird")

    def test_strip_invalid_xml_chars_keeps_allowed_whitespace(self) -> None:
        raw = "a\x0cb\x0bc\x00d\te\nf\rg \u00e9 \U0001F4DC"

        self.assertEqual(strip_invalid_xml_chars(raw), "a b c d\te\nf\rg \u00e9 \U0001F4DC")

    def test_format_bytes(self) -> None:
        self.assertEqual(format_bytes(0), "0 B")
        self.assertEqual(format_bytes(512), "512.00 B")
        self.assertEqual(format_bytes(2048), "2.00 KB")
        self.assertEqual(format_bytes(3 * 1024 * 1024), "3.00 MB")
