from __future__ import annotations

import math

import pytest

from pharmagtn.amounts import is_blank, parse_number


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("€ 1.234,56", 1234.56),
        ("EUR 99,5", 99.5),
        ("  15 200 ", 15200.0),
        ("1 000,25", 1000.25),
        ("(1.234,56)", -1234.56),
        ("250-", -250.0),
        ("\u2212 12,5", -12.5),
        ("1,234,567", 1234567.0),
        ("1.234.567", 1234567.0),
        ("0,0123", 0.0123),
        ("42", 42.0),
    ],
)
def test_parse_number_handles_locale_formats(raw, expected):
    assert parse_number(raw, 0.0) == pytest.approx(expected)


def test_parse_number_passes_numbers_through():
    assert parse_number(12, 0.0) == 12.0
    assert parse_number(3.5, 0.0) == 3.5


def test_parse_number_uses_fallback_for_garbage():
    assert parse_number("n.v.t.", 0.0) == 0.0
    assert parse_number("", 7.0) == 7.0
    assert parse_number(None, 1.0) == 1.0
    assert parse_number(True, 0.0) == 0.0
    assert math.isnan(parse_number("abc", math.nan))
    assert parse_number(float("inf"), 0.0) == 0.0


def test_is_blank_recognises_placeholders():
    for value in (None, float("nan"), "", "  ", "nan", "None", "-", "--"):
        assert is_blank(value)
    assert not is_blank("0")
    assert not is_blank(0)
