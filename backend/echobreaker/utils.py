"""
Shared utility functions for the diversity engine.
"""
from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as dateparser


def now_utc() -> datetime:
    """
    Get current UTC datetime with timezone information.

    Returns:
        Current UTC datetime
    """
    return datetime.now(timezone.utc)


def parse_utc_datetime(date_string: Optional[str]) -> Optional[datetime]:
    """
    Parse a date string and convert to UTC datetime.

    Args:
        date_string: Date string in various formats, or None

    Returns:
        UTC datetime object, or None if input is None/empty/unparseable
    """
    if not date_string:
        return None

    try:
        parsed_date = dateparser.parse(date_string)
    except (ValueError, OverflowError):
        return None

    if parsed_date.tzinfo:
        return parsed_date.astimezone(timezone.utc)
    return parsed_date.replace(tzinfo=timezone.utc)


def normalize_text(text: str | None) -> str:
    """
    Normalize whitespace in text content.

    Args:
        text: Input text string (can be None)

    Returns:
        Normalized text with single spaces and trimmed edges
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero for positive input.

    Python's round() uses banker's rounding, which would turn 12.5 into 12.
    """
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    """
    Clamp a value to the range [low, high].
    """
    return max(low, min(high, value))


def clamp_score(value: float) -> int:
    """
    Clamp a score to the integer range [0, 100].
    """
    return int(clamp(value, 0, 100))
