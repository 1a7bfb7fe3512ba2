"""Price and sold-date normalization for Japanese listing text."""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

_Z2H = str.maketrans("０１２３４５６７８９", "0123456789")

# Most specific first: a bare "M月" must not win over "YYYY年M月D日".
_DATE_PATTERNS = [
    ("ymd", re.compile(r"(\d{4})[-/](\d{1,2})[-/](\d{1,2})")),
    ("ymd", re.compile(r"(\d{4})年(\d{1,2})月(\d{1,2})日")),
    ("ym", re.compile(r"(\d{4})年(\d{1,2})月")),
    ("md", re.compile(r"(\d{1,2})[-/](\d{1,2})")),
    ("md", re.compile(r"(\d{1,2})月(\d{1,2})日")),
    ("m", re.compile(r"(\d{1,2})月")),
]


# Subset used to spot a sold date inside arbitrary node text; bare "M月" and
# "M/D" are too ambiguous there (model numbers, sizes).
_DATE_FRAGMENT_RE = re.compile(
    r"\d{4}[-/]\d{1,2}[-/]\d{1,2}|\d{4}年\d{1,2}月(?:\d{1,2}日)?|\d{1,2}月\d{1,2}日"
)


def z2h_digits(text: str) -> str:
    return (text or "").translate(_Z2H)


def normalize_price(text: Optional[str]) -> int:
    """Parse every digit in ``text`` as one integer amount.

    Examples: "12,345円" -> 12345, "¥9,800" -> 9800, "" -> 0
    """
    digits = re.sub(r"[^0-9]", "", z2h_digits(text or ""))
    if not digits:
        return 0
    try:
        return int(digits)
    except ValueError:
        return 0


def months_ago(text: Optional[str], today: Optional[date] = None) -> Optional[int]:
    """Return how many calendar months before ``today`` a sold date lies.

    Dates without a year are assumed to be the most recent such month.
    Returns ``None`` when no date can be recognised.
    """
    if not text:
        return None
    today = today or date.today()
    s = z2h_digits(text)
    for kind, pattern in _DATE_PATTERNS:
        m = pattern.search(s)
        if not m:
            continue
        if kind in ("ymd", "ym"):
            year, month = int(m.group(1)), int(m.group(2))
        else:
            year, month = today.year, int(m.group(1))
        if not 1 <= month <= 12:
            return None
        delta = (today.year - year) * 12 + (today.month - month)
        if delta < 0 and kind in ("md", "m"):
            delta += 12
        return max(delta, 0)
    return None


def find_date_text(text: Optional[str]) -> str:
    """Return the first sold-date looking fragment of ``text``, or ``""``."""
    for m in _DATE_FRAGMENT_RE.finditer(z2h_digits(text or "")):
        if months_ago(m.group(0)) is not None:
            return m.group(0)
    return ""
