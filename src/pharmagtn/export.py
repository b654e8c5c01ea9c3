from __future__ import annotations

import io
import logging
from typing import Iterable, Optional, Union

import pandas as pd
from openpyxl.utils import get_column_letter

from pharmagtn.aggregation import ContractAnalysis
from pharmagtn.normalization import CanonicalRow, rows_to_frame

__all__ = ["export_analysis_workbook", "records_to_csv_bytes", "RAW_INPUT_COLUMNS"]

logger = logging.getLogger(__name__)

RAW_INPUT_COLUMNS = ["customer", "sku", "units", "claim_amount", "gross", "period"]
NO_DATA = pd.DataFrame({"no data": []})


def _autosize_sheet(writer: pd.ExcelWriter, df: pd.DataFrame, sheet_name: str) -> None:
    worksheet = writer.sheets[sheet_name]
    for idx, col in enumerate(df.columns, start=1):
        max_len = max([len(str(col))] + [len(str(v)) for v in df[col]])
        worksheet.column_dimensions[get_column_letter(idx)].width = min(max_len + 2, 60)


def _write_sheet(writer: pd.ExcelWriter, df: Optional[pd.DataFrame], sheet_name: str) -> None:
    frame = df if df is not None and not df.empty else NO_DATA
    frame.to_excel(writer, index=False, sheet_name=sheet_name)
    _autosize_sheet(writer, frame, sheet_name)


def export_analysis_workbook(
    rows: Union[pd.DataFrame, Iterable[CanonicalRow]],
    analysis: Optional[ContractAnalysis],
) -> bytes:
    """Write the input rows and the analysis frames to a four-sheet xlsx.

    Empty inputs still get their sheet, holding only a "no data" header.
    """
    raw = rows if isinstance(rows, pd.DataFrame) else rows_to_frame(list(rows))
    raw = raw[[column for column in RAW_INPUT_COLUMNS if column in raw.columns]]

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        _write_sheet(writer, raw, "raw_input")
        _write_sheet(writer, analysis.aggregates if analysis else None, "timeseries_contract")
        _write_sheet(writer, analysis.totals if analysis else None, "timeseries_total")
        _write_sheet(writer, analysis.latest_snapshot if analysis else None, "latest_snapshot")
    logger.debug("Exported workbook with %d input rows", len(raw))
    return buffer.getvalue()


def records_to_csv_bytes(frame: pd.DataFrame) -> bytes:
    buffer = io.BytesIO()
    frame.to_csv(buffer, index=False, encoding="utf-8-sig")
    return buffer.getvalue()
