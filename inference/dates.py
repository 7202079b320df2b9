"""
inference/dates.py

Date heuristics shared by type inference and value coercion.
No I/O, no state.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

# Excel stores dates as day counts from 1899-12-30. Serials below 61 sit
# before Excel's phantom 1900-02-29 and are shifted one day so serial 1 is
# 1900-01-01.
EXCEL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)
EXCEL_LEAP_BUG_SERIAL = 61

# Upper bound used when classifying integer columns as serial dates.
EXCEL_SERIAL_UPPER_BOUND = 100_000
# Largest serial Excel itself accepts (9999-12-31).
EXCEL_SERIAL_MAX = 2_958_465

MIN_PLAUSIBLE_YEAR = 1900
MAX_PLAUSIBLE_YEAR = 2100

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
FOUR_DIGIT_RE = re.compile(r"^\d{4}$")

# Ordered date shapes recognised during inference.
DATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$"),                   # YYYY-MM-DD
    re.compile(r"^\d{4}$"),                                   # YYYY
    re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"),                   # MM/DD/YYYY
    re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$"),                   # DD-MM-YYYY
    re.compile(r"^\d{4}/\d{1,2}/\d{1,2}$"),                   # YYYY/MM/DD
    re.compile(r"^\d{1,2}/\d{1,2}/\d{2}$"),                   # MM/DD/YY
    re.compile(r"^\d{1,2}-\d{1,2}-\d{2}$"),                   # DD-MM-YY
    re.compile(r"^[A-Za-z]{3,9}\.?\s+\d{1,2},?\s+\d{4}$"),    # Mon DD, YYYY
    re.compile(r"^\d{1,2}\s+[A-Za-z]{3,9}\.?\s+\d{4}$"),      # DD Mon YYYY
    re.compile(r"^[A-Za-z]{3,9}\.?\s+\d{1,2}$"),              # Mon DD
    re.compile(r"^\d{4}-\d{1,2}-\d{1,2}T\d{1,2}:\d{1,2}"),    # ISO datetime
    re.compile(r"^\d{1,2}:\d{1,2}:\d{1,2}$"),                 # HH:MM:SS
    re.compile(r"^\d{1,2}:\d{1,2}$"),                         # HH:MM
)

_YMD_RE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")
_MDY_RE = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})$")
_MONTH_FIRST_RE = re.compile(r"^([A-Za-z]{3,9})\.?\s+(\d{1,2}),?(?:\s+(\d{4}))?$")
_DAY_FIRST_RE = re.compile(r"^(\d{1,2})\s+([A-Za-z]{3,9})\.?\s+(\d{4})$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?$")

DATE_KEYWORDS: tuple[str, ...] = (
    "date", "time", "timestamp", "datetime",
    "created", "updated", "modified", "deleted",
    "birth", "expires", "expired", "deadline",
    "published", "release", "launch",
    "registered", "joined", "last_login",
    "effective", "until",
)


def is_date_column_name(column_name: str) -> bool:
    """
    Return True when the column name carries a date-related keyword.
    """

    lowered = column_name.lower().strip()
    return any(keyword in lowered for keyword in DATE_KEYWORDS)


# ---------------------------------------------------------------------------
# Excel serials
# ---------------------------------------------------------------------------


def is_excel_date_serial(value: float) -> bool:
    """
    Return True for numbers inside Excel's valid serial range.

    Fractions are accepted (they carry the time of day). Serial 0 and
    negatives are rejected.
    """

    if isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    if not math.isfinite(number):
        return False
    return 1 <= number <= EXCEL_SERIAL_MAX


def excel_serial_to_datetime(serial: float) -> datetime:
    epoch = EXCEL_EPOCH
    if serial < EXCEL_LEAP_BUG_SERIAL:
        epoch = EXCEL_EPOCH + timedelta(days=1)
    return epoch + timedelta(milliseconds=round(serial * 86_400_000))


def convert_excel_date(serial: float) -> str:
    """
    Convert an Excel serial to an ISO-8601 UTC timestamp.

    ``convert_excel_date(1) == "1900-01-01T00:00:00.000Z"``
    """

    return format_iso_timestamp(excel_serial_to_datetime(serial))


def format_iso_timestamp(value: datetime) -> str:
    """
    Format a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC.
    """

    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_integer(value: Any) -> int | None:
    """
    Return the integer a value spells, or None.

    Accepts ints, integral floats and integer strings. Booleans are not
    integers here.
    """

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None
    text = str(value).strip()
    if _INTEGER_RE.match(text):
        return int(text)
    return None


# ---------------------------------------------------------------------------
# String parsing
# ---------------------------------------------------------------------------


def _month_number(token: str) -> int | None:
    return _MONTHS.get(token.lower().rstrip(".")[:3])


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date_string(text: str) -> date | None:
    """
    Parse the date shapes listed in DATE_PATTERNS into a calendar date.

    Two-digit years expand to 20YY. Slash/dash day-month forms are read
    month-first. A month-day without a year resolves to 2001, the way a
    browser Date() would. Bare times carry no calendar date and never parse.
    """

    value = text.strip()
    if not value:
        return None

    match = _YMD_RE.match(value)
    if match:
        return _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    if FOUR_DIGIT_RE.match(value):
        return _safe_date(int(value), 1, 1)

    match = _MDY_RE.match(value)
    if match:
        month, day, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
        if year < 100:
            year += 2000
        return _safe_date(year, month, day)

    match = _MONTH_FIRST_RE.match(value)
    if match:
        month = _month_number(match.group(1))
        if month is None:
            return None
        year = int(match.group(3)) if match.group(3) else 2001
        return _safe_date(year, month, int(match.group(2)))

    match = _DAY_FIRST_RE.match(value)
    if match:
        month = _month_number(match.group(2))
        if month is None:
            return None
        return _safe_date(int(match.group(3)), month, int(match.group(1)))

    if _TIME_RE.match(value):
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(normalized).date()
    except ValueError:
        return None


def looks_like_date(text: str) -> bool:
    """
    Pattern + calendar + plausible-year check for one string.
    """

    value = text.strip()
    if not any(pattern.match(value) for pattern in DATE_PATTERNS):
        return False
    parsed = parse_date_string(value)
    if parsed is None:
        return False
    return MIN_PLAUSIBLE_YEAR <= parsed.year <= MAX_PLAUSIBLE_YEAR
