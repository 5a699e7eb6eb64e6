"""
Text helpers for long-form description and OCR content.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

TRUNCATION_MARKER = "\n\n[... truncated ...]"
WORD_BOUNDARY_LOOKBACK = 100

_WHITESPACE = frozenset({" ", "\n", "\t"})
_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")
# Anything outside the XML 1.0 Char production.
_INVALID_XML_CHARS = re.compile("[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")


@dataclass(frozen=True)
class TruncateResult:
    text: str
    truncated: bool


def truncate_text(text: str | None, max_length: int) -> TruncateResult:
    """
    Truncate ``text`` to ``max_length`` characters, breaking at a word boundary.

    The cut point is the last whitespace character found while scanning back
    at most ``WORD_BOUNDARY_LOOKBACK`` characters from ``max_length``; without
    one the text is cut exactly at ``max_length``. Truncated output always
    ends with ``TRUNCATION_MARKER``.
    """

    if text is None:
        return TruncateResult(text="", truncated=False)
    if len(text) <= max_length:
        return TruncateResult(text=text, truncated=False)

    break_point = max_length
    lookback_limit = max(0, max_length - WORD_BOUNDARY_LOOKBACK)
    for index in range(max_length, lookback_limit, -1):
        if text[index] in _WHITESPACE:
            break_point = index
            break

    return TruncateResult(
        text=text[:break_point].strip() + TRUNCATION_MARKER,
        truncated=True,
    )


def estimate_byte_size(text: str | None) -> int:
    """Return the UTF-8 encoded size of ``text``."""
    if not text:
        return 0
    return len(text.encode("utf-8"))


def exceeds_max_length(text: str | None, max_length: int) -> bool:
    if text is None:
        return False
    return len(text) > max_length


def normalize_text(text: str | None) -> str:
    """
    Normalize line endings, collapse runs of blank lines and trim.
    """

    if not text:
        return ""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    normalized = _EXCESS_BLANK_LINES.sub("\n\n", normalized)
    return normalized.strip()


def format_bytes(size: int) -> str:
    if size <= 0:
        return "0 B"
    units = ("B", "KB", "MB", "GB")
    value = float(size)
    unit_index = 0
    while value >= 1024 and unit_index < len(units) - 1:
        value /= 1024
        unit_index += 1
    return f"{value:.2f} {units[unit_index]}"


def strip_invalid_xml_chars(text: str) -> str:
    """
    Replace characters XML 1.0 cannot carry with a space.

    Form feeds and vertical tabs show up as page breaks in OCR output.
    """

    return _INVALID_XML_CHARS.sub(" ", text)
