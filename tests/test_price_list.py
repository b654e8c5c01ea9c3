from __future__ import annotations

import pytest

from pharmagtn.price_list import (
    NoPriceFound,
    PriceFound,
    SectionCandidate,
    find_registration_tokens,
    find_section_price,
    normalize_registration,
    parse_price_list_text,
    read_price_list_sheet,
    split_sections,
)
from pharmagtn.readers import TabularData

DOCUMENT = """Staatscourant 2025
Regeling maximumprijzen geneesmiddelen, geldig vanaf 01-04-2025
Productgroep Maximumprijs
Paracetamol tablet 500 mg \u20ac 1,00 per stuk
Registratienummer Artikelnaam
RVG12345 Paracetamol 500 mg tablet
RVG 23456 Paracetamol Apotheek 500 mg
1000 mg tablet, omhulde
Productgroep Maximumprijs
Ibuprofen tablet 400 mg
Registratienummer Artikelnaam
RVG 34567 Ibuprofen 400 mg
Productgroep Maximumprijs
Paracetamol tablet 500 mg \u20ac 1,20 per stuk
Registratienummer Artikelnaam
RVG12345 Paracetamol 500 mg tablet
EU/1/07/123/001 Paracetamol EU
"""


def test_normalize_registration_removes_spacing_and_punctuation():
    assert normalize_registration("rvg 12.345") == "RVG12345"
    assert normalize_registration(" EU/1/07/123/001 ") == "EU/1/07/123/001"
    assert normalize_registration(None) == ""


def test_split_sections_ignores_preamble():
    sections = split_sections(DOCUMENT)

    assert len(sections) == 3
    assert sections[0].lines[0] == "Paracetamol tablet 500 mg \u20ac 1,00 per stuk"


def test_find_section_price_stops_at_registration_listing():
    section = SectionCandidate(index=1, lines=("Registratienummer Artikelnaam", "RVG 1234 Spray 10 per fles"))

    assert isinstance(find_section_price(section), NoPriceFound)


def test_find_section_price_reads_amount_and_unit():
    section = SectionCandidate(index=1, lines=("Omeprazol capsule 20 mg", "0,0456 per Capsule"))

    price = find_section_price(section)

    assert isinstance(price, PriceFound)
    assert price.unit_price == pytest.approx(0.0456)
    assert price.unit == "capsule"


def test_find_registration_tokens_skips_wrapped_article_lines():
    section = split_sections(DOCUMENT)[0]

    tokens = find_registration_tokens(section)

    assert tokens.listing_found
    assert tokens.tokens == ("RVG12345", "RVG23456")


def test_parse_price_list_last_price_wins_and_sections_without_price_are_skipped():
    result = parse_price_list_text(DOCUMENT)

    prices = result.by_registration()
    assert prices["RVG12345"].unit_price_eur == pytest.approx(1.20)
    assert prices["RVG23456"].unit_price_eur == pytest.approx(1.00)
    assert prices["EU/1/07/123/001"].unit_price_eur == pytest.approx(1.20)
    assert "RVG34567" not in prices

    report = result.report
    assert report.mode == "sections"
    assert report.sections_total == 3
    assert report.sections_without_price == 1
    assert report.unpriced_registrations == 1
    assert report.overridden_duplicates == 1
    assert report.degraded
    assert result.ok


def test_parse_price_list_takes_valid_from_from_document():
    result = parse_price_list_text(DOCUMENT)

    assert {row.valid_from for row in result.rows} == {"2025-04-01"}


def test_parse_price_list_counts_sections_without_registrations():
    text = "Productgroep Maximumprijs\nInsuline 1,50 per ml\nGeen registraties\n"

    result = parse_price_list_text(text)

    assert result.rows == []
    assert result.report.sections_without_registrations == 1
    assert result.report.degraded


def test_parse_price_list_falls_back_to_inline_lines():
    text = "Prijslijst 2025-01-01\nRVG 12345 Paracetamol \u20ac 2,35\nREG 678901 Ibuprofen 4,10\nRVG 55555 zonder prijs\n"

    result = parse_price_list_text(text)

    prices = result.by_registration()
    assert result.report.mode == "inline"
    assert prices["RVG12345"].unit_price_eur == pytest.approx(2.35)
    assert prices["678901"].unit_price_eur == pytest.approx(4.10)
    assert prices["RVG12345"].valid_from == "2025-01-01"
    assert result.report.unpriced_registrations == 1


def test_read_price_list_sheet_maps_aliases():
    table = TabularData(
        header=["Registratienummer", "Eenheidsprijs", "Geldig vanaf"],
        records=[
            {"Registratienummer": "RVG 12.345", "Eenheidsprijs": "0,85", "Geldig vanaf": "01-07-2025"},
            {"Registratienummer": "", "Eenheidsprijs": "1,00", "Geldig vanaf": ""},
            {"Registratienummer": "RVG 99999", "Eenheidsprijs": "n.v.t.", "Geldig vanaf": ""},
        ],
    )

    result = read_price_list_sheet(table)

    assert [row.registration_number for row in result.rows] == ["RVG12345"]
    assert result.rows[0].unit_price_eur == pytest.approx(0.85)
    assert result.rows[0].valid_from == "2025-07-01"
    assert result.report.mode == "sheet"
    assert result.report.issues == ["2 rijen zonder registratienummer of geldige prijs overgeslagen"]


def test_read_price_list_sheet_requires_registration_and_price_columns():
    result = read_price_list_sheet(TabularData(header=["Naam"], records=[{"Naam": "x"}]))

    assert not result.ok
    assert len(result.report.errors) == 2


def test_dates_and_years_in_listing_are_not_registrations():
    text = (
        "Productgroep Maximumprijs\n"
        "Salbutamol inhalator 0,90 per dosis\n"
        "Registratienummer Artikelnaam\n"
        "01-07-2025\n"
        "RVG 45678 Salbutamol 100 mcg\n"
        "Productgroep Maximumprijs\n"
        "Paracetamol tablet 500 mg 1,20 per stuk\n"
        "Registratienummer Artikelnaam\n"
        "RVG12345 Paracetamol 500 mg tablet\n"
        "2025 nr. 12345\n"
        "2025-07-01 Staatscourant pagina 4\n"
        "123456\n"
    )

    result = parse_price_list_text(text)

    assert sorted(row.registration_number for row in result.rows) == ["RVG12345", "RVG45678"]
    assert result.by_registration()["RVG12345"].unit_price_eur == pytest.approx(1.20)
    assert not result.report.degraded
