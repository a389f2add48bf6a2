"""Normalization helpers.

Centralizes lenient parsing of numbers, labels and periods.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_YEAR_MONTH = re.compile(r"^\s*(\d{4})-(\d{1,2})(?:-(\d{1,2}))?")


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def parse_kilometers(value: Any) -> float | None:
    """Coerce a user-entered distance; ``None`` unless finite and non-negative."""
    result = safe_float(value)
    if result is None or result < 0:
        return None
    return result


def strip_to_numeric(raw: str) -> str:
    """Drop everything but digits, ``.`` and ``-`` (thousands separators, units, currency)."""
    return _NON_NUMERIC.sub("", raw)


def parse_distance(raw: str | None) -> float | None:
    """Parse a distance cell such as ``"1,234.5 km"``.

    Returns ``None`` when nothing numeric survives the stripping.
    """
    if raw is None:
        return None
    cleaned = strip_to_numeric(raw)
    if not cleaned or cleaned in {"-", ".", "-."}:
        return None
    return safe_float(cleaned)


def clean_cell(value: str) -> str:
    """Trim whitespace and one layer of surrounding quotes."""
    text = value.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {'"', "'"}:
        text = text[1:-1].strip()
    return text


def normalize_period(value: Any) -> date:
    """Normalize a month-like value to the first day of its month.

    Accepts :class:`~datetime.date`, :class:`~datetime.datetime`, and
    ``"YYYY-MM"`` / ``"YYYY-MM-DD"`` / ISO timestamp strings.

    Raises
    ------
    ValueError
        If *value* does not identify a calendar month.
    """
    if isinstance(value, datetime):
        return value.date().replace(day=1)
    if isinstance(value, date):
        return value.replace(day=1)
    if isinstance(value, str):
        match = _YEAR_MONTH.match(value)
        if match:
            year, month = int(match.group(1)), int(match.group(2))
            if 1 <= month <= 12:
                return date(year, month, 1)
    raise ValueError(f"not a calendar month: {value!r}")


def end_of_month(value: date) -> date:
    """Return the last day of *value*'s month."""
    if value.month == 12:
        return date(value.year, 12, 31)
    first_next = date(value.year, value.month + 1, 1)
    return date.fromordinal(first_next.toordinal() - 1)


def fold(text: str | None) -> str:
    """Case-insensitive comparison key."""
    return (text or "").strip().casefold()
