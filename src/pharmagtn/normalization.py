from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Dict, List, Optional, Tuple

import pandas as pd

from pharmagtn.amounts import is_blank, parse_number
from pharmagtn.headers import HeaderResolution, resolve_headers
from pharmagtn.periods import QUARTER, normalize_period, quarter_start_month
from pharmagtn.readers import TabularData
from pharmagtn.schema import DISCOUNT_FIELDS, GTN_SCHEMA, INCOME_FIELDS, REBATE_FIELDS, Schema
from pharmagtn.settings import MAX_WARNINGS, RECONCILIATION_ABS_TOLERANCE, RECONCILIATION_REL_TOLERANCE

__all__ = [
    "CanonicalRow",
    "ValidationReport",
    "NormalizationResult",
    "normalize_rows",
    "rows_to_frame",
    "within_tolerance",
    "CANONICAL_COLUMNS",
]

logger = logging.getLogger(__name__)

SUMMARY_ROW_LABELS = ("totaal", "total", "subtotaal", "subtotal", "grand total", "eindtotaal")

DERIVED_FIELDS = ("invoiced", "net")


@dataclass(frozen=True)
class CanonicalRow:
    product_group: str
    sku: str
    customer: str
    period: str
    gross: float = 0.0
    d_channel: float = 0.0
    d_customer: float = 0.0
    d_product: float = 0.0
    d_volume: float = 0.0
    d_value: float = 0.0
    d_other_sales: float = 0.0
    d_mandatory: float = 0.0
    d_local: float = 0.0
    invoiced: float = 0.0
    r_direct: float = 0.0
    r_prompt: float = 0.0
    r_indirect: float = 0.0
    r_mandatory: float = 0.0
    r_local: float = 0.0
    inc_royalty: float = 0.0
    inc_other: float = 0.0
    net: float = 0.0
    units: float = 0.0
    claim_amount: float = 0.0

    @property
    def discounts_total(self) -> float:
        return sum(getattr(self, name) for name in DISCOUNT_FIELDS)

    @property
    def rebates_total(self) -> float:
        return sum(getattr(self, name) for name in REBATE_FIELDS)

    @property
    def incomes_total(self) -> float:
        return sum(getattr(self, name) for name in INCOME_FIELDS)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


CANONICAL_COLUMNS = [item.name for item in fields(CanonicalRow)]


@dataclass
class ValidationReport:
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    corrected_count: int = 0
    suppressed_warnings: int = 0
    max_warnings: int = field(default=MAX_WARNINGS, repr=False)

    @property
    def ok(self) -> bool:
        return not self.errors

    def warn(self, message: str) -> None:
        if len(self.warnings) < self.max_warnings:
            self.warnings.append(message)
        else:
            self.suppressed_warnings += 1

    def finalize(self) -> "ValidationReport":
        if self.suppressed_warnings:
            self.warnings.append(f"... en {self.suppressed_warnings} meer waarschuwingen")
            self.suppressed_warnings = 0
        return self

    def to_dict(self) -> Dict[str, object]:
        return {
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "correctedCount": self.corrected_count,
        }


@dataclass
class NormalizationResult:
    rows: List[CanonicalRow]
    report: ValidationReport
    resolution: Optional[HeaderResolution] = None

    @property
    def ok(self) -> bool:
        return self.report.ok

    def to_frame(self) -> pd.DataFrame:
        return rows_to_frame(self.rows)


def within_tolerance(
    actual: float,
    expected: float,
    rel_tolerance: float = RECONCILIATION_REL_TOLERANCE,
    abs_tolerance: float = RECONCILIATION_ABS_TOLERANCE,
) -> bool:
    return abs(actual - expected) <= max(rel_tolerance * abs(expected), abs_tolerance)


def rows_to_frame(rows: List[CanonicalRow]) -> pd.DataFrame:
    return pd.DataFrame([row.to_dict() for row in rows], columns=CANONICAL_COLUMNS)


def _is_summary_label(value: str) -> bool:
    lowered = value.strip().casefold().rstrip(":").strip()
    if not lowered:
        return False
    return any(lowered == label or lowered.startswith(label + " (") for label in SUMMARY_ROW_LABELS)


def _format_amount(value: float) -> str:
    return f"{value:,.2f}"


def _period_key(raw: object) -> Optional[str]:
    period = normalize_period(raw)
    if period is None:
        return None
    if period.kind == QUARTER:
        return quarter_start_month(period.key)
    return period.key


def _report_schema(resolution: HeaderResolution, schema: Schema, report: ValidationReport) -> bool:
    missing_core = [name for name in schema.core if name in resolution.missing]
    if missing_core:
        labels = ", ".join(f"'{schema.label(name)}'" for name in missing_core)
        report.errors.append(f"Ontbrekende verplichte kolommen: {labels}")
        for name in missing_core:
            candidates = resolution.ambiguous.get(name)
            if candidates:
                report.errors.append(
                    f"Kolom '{schema.label(name)}' is niet eenduidig: {', '.join(candidates)}"
                )
        return False

    for name in schema.full:
        if name not in resolution.missing:
            continue
        if name in DERIVED_FIELDS:
            report.warn(f"Kolom '{schema.label(name)}' ontbreekt; waarde wordt per rij afgeleid")
        else:
            report.warn(f"Kolom '{schema.label(name)}' ontbreekt; waarde op 0 gezet voor alle rijen")

    for name, header in resolution.fuzzy_matches.items():
        report.warn(
            f"Kolom '{header}' is heuristisch gekoppeld aan '{schema.label(name)}'; controleer de koppeling"
        )
    return True


def _normalize_record(
    record: Dict[str, str],
    row_number: int,
    resolution: HeaderResolution,
    schema: Schema,
    report: ValidationReport,
    rel_tolerance: float,
    abs_tolerance: float,
) -> Optional[CanonicalRow]:
    def raw(name: str) -> object:
        header = resolution.header_for(name)
        if header is None:
            return ""
        return record.get(header, "")

    customer = str(raw("customer")).strip()
    sku = str(raw("sku")).strip()
    product_group = str(raw("product_group")).strip()

    if _is_summary_label(customer) or _is_summary_label(product_group):
        report.warn(f"Rij {row_number}: totaalregel '{customer or product_group}' overgeslagen")
        return None
    if not customer and not sku:
        report.warn(f"Rij {row_number}: lege klant en sku; rij overgeslagen")
        return None

    period_raw = raw("period")
    period = _period_key(period_raw)
    if period is None:
        report.warn(f"Rij {row_number}: ongeldige periode '{period_raw}'; rij overgeslagen")
        return None

    values: Dict[str, float] = {}
    for name in ("gross",) + DISCOUNT_FIELDS + REBATE_FIELDS + INCOME_FIELDS + ("units", "claim_amount"):
        values[name] = parse_number(raw(name), 0.0)

    for name in DISCOUNT_FIELDS + REBATE_FIELDS:
        if values[name] < 0:
            corrected = abs(values[name])
            report.corrected_count += 1
            report.warn(
                f"Rij {row_number}: negatieve waarde in '{schema.label(name)}' "
                f"({_format_amount(values[name])}) gecorrigeerd naar {_format_amount(corrected)}"
            )
            values[name] = corrected

    discounts = sum(values[name] for name in DISCOUNT_FIELDS)
    rebates = sum(values[name] for name in REBATE_FIELDS)
    incomes = sum(values[name] for name in INCOME_FIELDS)

    expected_invoiced = values["gross"] - discounts
    invoiced_raw = raw("invoiced")
    if is_blank(invoiced_raw):
        invoiced = max(0.0, expected_invoiced)
    else:
        invoiced = parse_number(invoiced_raw, 0.0)
        if not within_tolerance(invoiced, expected_invoiced, rel_tolerance, abs_tolerance):
            report.warn(
                f"Rij {row_number}: gefactureerde omzet {_format_amount(invoiced)} wijkt af van "
                f"bruto min kortingen ({_format_amount(expected_invoiced)})"
            )

    expected_net = invoiced - rebates + incomes
    net_raw = raw("net")
    if is_blank(net_raw):
        net = max(0.0, expected_net)
    else:
        net = parse_number(net_raw, 0.0)
        if not within_tolerance(net, expected_net, rel_tolerance, abs_tolerance):
            report.warn(
                f"Rij {row_number}: netto omzet {_format_amount(net)} wijkt af van "
                f"gefactureerd min rebates plus inkomsten ({_format_amount(expected_net)})"
            )

    return CanonicalRow(
        product_group=product_group,
        sku=sku,
        customer=customer,
        period=period,
        invoiced=invoiced,
        net=net,
        **values,
    )


def normalize_rows(
    table: TabularData,
    schema: Schema = GTN_SCHEMA,
    rel_tolerance: float = RECONCILIATION_REL_TOLERANCE,
    abs_tolerance: float = RECONCILIATION_ABS_TOLERANCE,
    max_warnings: int = MAX_WARNINGS,
) -> NormalizationResult:
    """Turn raw records into validated canonical rows plus a validation report.

    A missing core column rejects the whole batch. Everything else is
    reported as a warning: bad periods drop the row, negative discounts and
    rebates are flipped, reconciliation gaps are only flagged, and a
    repeated (customer, sku, period) key keeps the later record.
    """
    report = ValidationReport(max_warnings=max_warnings)
    resolution = resolve_headers(table.header, schema)

    if not _report_schema(resolution, schema, report):
        logger.info("Rejected batch: missing core columns %s", resolution.missing)
        return NormalizationResult(rows=[], report=report.finalize(), resolution=resolution)

    rows_by_key: Dict[Tuple[str, str, str], CanonicalRow] = {}
    for index, record in enumerate(table.records):
        row_number = table.row_number(index)
        row = _normalize_record(record, row_number, resolution, schema, report, rel_tolerance, abs_tolerance)
        if row is None:
            continue
        key = (row.customer.casefold(), row.sku.casefold(), row.period)
        if key in rows_by_key:
            report.warn(
                f"Rij {row_number}: dubbele combinatie (klant, sku, periode) "
                f"{row.customer} / {row.sku} / {row.period}; laatste telt"
            )
        rows_by_key[key] = row

    rows = list(rows_by_key.values())
    if not rows:
        report.errors.append("Geen geldige rijen gevonden")

    logger.info(
        "Normalized %d of %d records (%d warnings, %d corrections)",
        len(rows),
        len(table.records),
        len(report.warnings) + report.suppressed_warnings,
        report.corrected_count,
    )
    return NormalizationResult(rows=rows, report=report.finalize(), resolution=resolution)
