"""
Upload entry points used by the app.

Each function takes the raw upload (bytes or a file-like object) plus its
file name and always returns a result object: fatal input conditions are
reported in ``report.errors`` instead of being raised.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

from pharmagtn.aggregation import ContractAnalysis, analyze_contracts
from pharmagtn.errors import IngestionError, UnreadableDocumentError
from pharmagtn.normalization import NormalizationResult, ValidationReport, normalize_rows
from pharmagtn.pdf_text import extract_pdf_text
from pharmagtn.price_list import PriceListReport, PriceListResult, parse_price_list_text, read_price_list_sheet
from pharmagtn.readers import FileInput, read_bytes, read_table
from pharmagtn.schema import CONTRACT_SCHEMA, GTN_SCHEMA, Schema
from pharmagtn.settings import PDF_EXTENSIONS

__all__ = ["ingest_upload", "ingest_price_list", "analyze_upload"]

logger = logging.getLogger(__name__)


def _failed_normalization(exc: IngestionError) -> NormalizationResult:
    report = ValidationReport()
    report.errors.append(str(exc))
    return NormalizationResult(rows=[], report=report)


def ingest_upload(
    data: FileInput,
    filename: Optional[str] = None,
    schema: Schema = GTN_SCHEMA,
) -> NormalizationResult:
    try:
        table = read_table(data, filename)
    except IngestionError as exc:
        logger.info("Upload %s rejected: %s", filename, exc)
        return _failed_normalization(exc)
    return normalize_rows(table, schema)


def ingest_price_list(data: FileInput, filename: Optional[str] = None) -> PriceListResult:
    """Read a price-ceiling list from a PDF or from a spreadsheet export."""
    extension = Path(filename or "").suffix.lower().lstrip(".")
    try:
        if extension in PDF_EXTENSIONS:
            raw = read_bytes(data)
            if isinstance(raw, str):
                raise UnreadableDocumentError("PDF-bestand kan niet als tekst worden gelezen")
            return parse_price_list_text(extract_pdf_text(raw))
        return read_price_list_sheet(read_table(data, filename))
    except IngestionError as exc:
        logger.info("Price list %s rejected: %s", filename, exc)
        report = PriceListReport(mode="pdf" if extension in PDF_EXTENSIONS else "sheet")
        report.errors.append(str(exc))
        return PriceListResult(rows=[], report=report)


def analyze_upload(
    data: FileInput,
    filename: Optional[str] = None,
    level: str = "customer_sku",
    claim_basis: str = "claim",
    granularity: str = "month",
) -> Tuple[NormalizationResult, Optional[ContractAnalysis]]:
    result = ingest_upload(data, filename, CONTRACT_SCHEMA)
    if not result.ok:
        return result, None
    return result, analyze_contracts(result.rows, level=level, claim_basis=claim_basis, granularity=granularity)
