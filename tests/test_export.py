from __future__ import annotations

import io

import pandas as pd

from pharmagtn.aggregation import analyze_contracts
from pharmagtn.export import export_analysis_workbook, records_to_csv_bytes
from pharmagtn.normalization import CanonicalRow

ROWS = [
    CanonicalRow(product_group="", sku="A1", customer="Alpha BV", period="2025-01", gross=100.0, units=10, claim_amount=5),
    CanonicalRow(product_group="", sku="A1", customer="Alpha BV", period="2025-02", gross=120.0, units=12, claim_amount=6),
]


def test_export_analysis_workbook_writes_four_sheets():
    analysis = analyze_contracts(ROWS)

    content = export_analysis_workbook(ROWS, analysis)

    sheets = pd.read_excel(io.BytesIO(content), sheet_name=None)
    assert list(sheets) == ["raw_input", "timeseries_contract", "timeseries_total", "latest_snapshot"]
    assert list(sheets["raw_input"].columns) == ["customer", "sku", "units", "claim_amount", "gross", "period"]
    assert len(sheets["timeseries_contract"]) == 2
    assert list(sheets["latest_snapshot"]["period"]) == ["2025-02"]


def test_export_analysis_workbook_marks_empty_sheets():
    content = export_analysis_workbook([], None)

    sheets = pd.read_excel(io.BytesIO(content), sheet_name=None)
    for frame in sheets.values():
        assert list(frame.columns) == ["no data"]
        assert frame.empty


def test_records_to_csv_bytes_writes_bom():
    content = records_to_csv_bytes(pd.DataFrame({"klant": ["Café"], "omzet": [1.5]}))

    assert content.startswith(b"\xef\xbb\xbf")
    assert "Café" in content.decode("utf-8-sig")
