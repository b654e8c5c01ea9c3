from __future__ import annotations

import datetime as dt

import pytest

from pharmagtn.periods import (
    MONTH,
    Period,
    month_to_quarter,
    normalize_period,
    period_sort_key,
    quarter_start_month,
    to_quarter,
)


@pytest.mark.parametrize(
    "raw, key",
    [
        ("01-2025", "2025-01"),
        ("2025-01", "2025-01"),
        ("2025/3", "2025-03"),
        ("202502", "2025-02"),
        ("2024-11-15", "2024-11"),
        (dt.date(2024, 7, 1), "2024-07"),
        (dt.datetime(2024, 12, 31, 10, 30), "2024-12"),
        (202403.0, "2024-03"),
        ("maart 2025", "2025-03"),
        ("Oct 2024", "2024-10"),
        ("2025", "2025-01"),
    ],
)
def test_normalize_period_months(raw, key):
    period = normalize_period(raw)
    assert period is not None
    assert period.kind == "month"
    assert period.key == key


@pytest.mark.parametrize("raw", ["2025-Q2", "Q2-2025", "2025 Q2", "q2 2025"])
def test_normalize_period_quarters(raw):
    period = normalize_period(raw)
    assert period is not None
    assert period.kind == "quarter"
    assert period.key == "2025-Q2"
    assert period.label == "Q2-2025"


@pytest.mark.parametrize("raw", ["", None, "13-2025", "2025-00", "Q5-2025", "volgende maand", float("nan")])
def test_normalize_period_rejects_invalid_tokens(raw):
    assert normalize_period(raw) is None


def test_month_label_and_sort_key():
    period = normalize_period("2025-02")
    assert period.label == "02-2025"
    assert period.sort_key == 202502
    assert period.year == 2025


def test_sort_key_orders_months_across_years():
    keys = ["2025-01", "2024-12", "2024-02"]
    assert sorted(keys, key=period_sort_key) == ["2024-02", "2024-12", "2025-01"]


def test_quarter_helpers():
    assert month_to_quarter("2025-01") == "2025-Q1"
    assert month_to_quarter("2025-06") == "2025-Q2"
    assert month_to_quarter("2025-12") == "2025-Q4"
    assert quarter_start_month("2025-Q3") == "2025-07"
    assert to_quarter(normalize_period("2025-05")).key == "2025-Q2"


def test_to_quarter_rejects_month_outside_calendar():
    with pytest.raises(ValueError):
        to_quarter(Period(kind=MONTH, key="2025-13", label="13-2025", sort_key=202513))
