"""
Central configuration for the ingestion and analysis core.

This module defines:
- Reconciliation tolerances used by the row validator.
- Heuristic anchors for the government price-list parser.
- Supported file extensions and CSV dialect candidates.

All values are constants and should be imported where needed (no runtime logic here).
"""

from __future__ import annotations


CSV_EXTENSIONS = {"csv"}
EXCEL_EXTENSIONS = {"xlsx", "xlsm", "xls"}
PDF_EXTENSIONS = {"pdf"}

CSV_ENCODINGS = ("utf-8-sig", "cp1252")
CSV_DELIMITERS = (";", ",", "\t")

RECONCILIATION_REL_TOLERANCE = 0.015
RECONCILIATION_ABS_TOLERANCE = 5.0

NEAR_ZERO = 1e-9

MAX_WARNINGS = 200

PRICE_SECTION_HEADER = r"Productgroep\s+Maximumprijs"
REGISTRATION_SUBHEADER = r"Registratienummer"
PRICE_SEARCH_LINES = 12

PRICE_CEILING_THRESHOLD_PCT = 0.001
