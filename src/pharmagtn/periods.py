from __future__ import annotations

import datetime as dt
import math
import re
from dataclasses import dataclass
from typing import Optional

__all__ = [
    "Period",
    "normalize_period",
    "month_to_quarter",
    "to_quarter",
    "quarter_start_month",
    "period_sort_key",
]

MONTH = "month"
QUARTER = "quarter"

MONTH_NAMES = {
    "jan": 1, "january": 1, "januari": 1,
    "feb": 2, "february": 2, "februari": 2,
    "mar": 3, "march": 3, "mrt": 3, "maart": 3,
    "apr": 4, "april": 4,
    "may": 5, "mei": 5,
    "jun": 6, "june": 6, "juni": 6,
    "jul": 7, "july": 7, "juli": 7,
    "aug": 8, "august": 8, "augustus": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "okt": 10, "october": 10, "oktober": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

MONTH_FIRST_PATTERN = re.compile(r"^(\d{1,2})[-/.](\d{4})$")
YEAR_FIRST_PATTERN = re.compile(r"^(\d{4})[-/.](\d{1,2})$")
COMPACT_MONTH_PATTERN = re.compile(r"^(\d{4})(\d{2})$")
YEAR_QUARTER_PATTERN = re.compile(r"^(\d{4})\s*[-/ ]?\s*Q([1-4])$", re.IGNORECASE)
QUARTER_YEAR_PATTERN = re.compile(r"^Q([1-4])\s*[-/ ]?\s*(\d{4})$", re.IGNORECASE)
YEAR_PATTERN = re.compile(r"^(\d{4})$")
ISO_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[ T].*)?$")
MONTH_NAME_PATTERN = re.compile(r"^([^\W\d_]+)\.?[\s-]+(\d{4})$")


@dataclass(frozen=True)
class Period:
    kind: str
    key: str
    label: str
    sort_key: int

    @property
    def year(self) -> int:
        return int(self.key[:4])


def _month(year: int, month: int) -> Optional[Period]:
    if not 1 <= month <= 12:
        return None
    return Period(
        kind=MONTH,
        key=f"{year}-{month:02d}",
        label=f"{month:02d}-{year}",
        sort_key=year * 100 + month,
    )


def _quarter(year: int, quarter: int) -> Optional[Period]:
    if not 1 <= quarter <= 4:
        return None
    return Period(
        kind=QUARTER,
        key=f"{year}-Q{quarter}",
        label=f"Q{quarter}-{year}",
        sort_key=year * 10 + quarter,
    )


def normalize_period(value: object) -> Optional[Period]:
    """Return the canonical Period for a period token, or None when unrecognised."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, (dt.date, dt.datetime)):
        return _month(value.year, value.month)
    if isinstance(value, float) and value.is_integer():
        value = int(value)

    text = str(value).strip()
    if not text:
        return None

    match = MONTH_FIRST_PATTERN.match(text)
    if match:
        return _month(int(match.group(2)), int(match.group(1)))

    match = YEAR_FIRST_PATTERN.match(text)
    if match:
        return _month(int(match.group(1)), int(match.group(2)))

    match = COMPACT_MONTH_PATTERN.match(text)
    if match:
        return _month(int(match.group(1)), int(match.group(2)))

    match = YEAR_QUARTER_PATTERN.match(text)
    if match:
        return _quarter(int(match.group(1)), int(match.group(2)))

    match = QUARTER_YEAR_PATTERN.match(text)
    if match:
        return _quarter(int(match.group(2)), int(match.group(1)))

    match = YEAR_PATTERN.match(text)
    if match:
        return _month(int(match.group(1)), 1)

    match = ISO_DATE_PATTERN.match(text)
    if match:
        return _month(int(match.group(1)), int(match.group(2)))

    match = MONTH_NAME_PATTERN.match(text)
    if match:
        month = MONTH_NAMES.get(match.group(1).casefold())
        if month is not None:
            return _month(int(match.group(2)), month)

    return None


def month_to_quarter(key: str) -> str:
    year, month = key.split("-")
    return f"{int(year)}-Q{math.ceil(int(month) / 3)}"


def to_quarter(period: Period) -> Period:
    if period.kind == QUARTER:
        return period
    normalized = normalize_period(month_to_quarter(period.key))
    if normalized is None:
        raise ValueError(f"Cannot convert period to a quarter: {period.key}")
    return normalized


def quarter_start_month(key: str) -> str:
    year, quarter = key.split("-Q")
    return f"{int(year)}-{(int(quarter) - 1) * 3 + 1:02d}"


def period_sort_key(key: str) -> int:
    period = normalize_period(key)
    if period is None:
        return 0
    return period.sort_key
