from __future__ import annotations

import math
import re
from numbers import Number

__all__ = ["parse_number", "is_blank"]

SPACE_PATTERN = re.compile(r"[\s\u00A0\u202F]")
NON_NUMERIC_PATTERN = re.compile(r"[^0-9.\-]")

CURRENCY_TOKENS = ("eur", "usd", "gbp", "€", "$", "£")


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    text = str(value).strip()
    return text == "" or text.lower() in {"nan", "none", "-", "--"}


def _normalize_separators(cleaned: str) -> str:
    comma = cleaned.rfind(",")
    period = cleaned.rfind(".")
    if comma != -1 and period != -1:
        # The rightmost separator is the decimal one.
        if comma > period:
            return cleaned.replace(".", "").replace(",", ".")
        return cleaned.replace(",", "")
    if comma != -1:
        if cleaned.count(",") > 1:
            return cleaned.replace(",", "")
        return cleaned.replace(",", ".")
    if period != -1 and cleaned.count(".") > 1:
        return cleaned.replace(".", "")
    return cleaned


def parse_number(value: object, fallback: float) -> float:
    """Parse a locale-formatted amount such as ``"€ 1.234,56"``.

    Returns ``fallback`` for anything that does not yield a finite number;
    callers pick ``0.0`` or ``math.nan`` themselves. Never raises.
    """
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, Number):
        number = float(value)
        return number if math.isfinite(number) else fallback

    cleaned = SPACE_PATTERN.sub("", str(value))
    cleaned = cleaned.replace("\u2212", "-")  # minus sign variant
    lowered = cleaned.lower()
    for token in CURRENCY_TOKENS:
        lowered = lowered.replace(token, "")
    cleaned = lowered

    negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        negative = True
        cleaned = cleaned[1:-1]
    elif cleaned.endswith("-") and not cleaned.startswith("-"):
        negative = True
        cleaned = cleaned[:-1]

    cleaned = _normalize_separators(cleaned)
    cleaned = NON_NUMERIC_PATTERN.sub("", cleaned)
    if cleaned in {"", "-", ".", "-."}:
        return fallback

    try:
        number = float(cleaned)
    except ValueError:
        return fallback
    if not math.isfinite(number):
        return fallback
    return -number if negative else number
