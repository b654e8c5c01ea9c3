from __future__ import annotations

import logging
import math
import re
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from pharmagtn.amounts import parse_number
from pharmagtn.headers import normalize_header_name
from pharmagtn.readers import TabularData
from pharmagtn.settings import PRICE_SEARCH_LINES, PRICE_SECTION_HEADER, REGISTRATION_SUBHEADER

__all__ = [
    "PriceCeilingRow",
    "SectionCandidate",
    "PriceFound",
    "NoPriceFound",
    "RegistrationTokens",
    "PriceListReport",
    "PriceListResult",
    "normalize_registration",
    "split_sections",
    "find_section_price",
    "find_registration_tokens",
    "parse_price_list_text",
    "read_price_list_sheet",
]

logger = logging.getLogger(__name__)

PRICE_PATTERN = re.compile(r"(\d[\d.,]*)\s*per\s+([^\W\d_]+)", re.IGNORECASE)
REGISTRATION_LINE_PATTERN = re.compile(
    r"^(?:(?P<prefix>RVG|REGNR|REG)\b[.:]?\s*)?(?P<token>[A-Z0-9][A-Z0-9/.\-]*)(?:\s+(?P<rest>.*))?$",
    re.IGNORECASE,
)
INLINE_REGISTRATION_PATTERN = re.compile(r"\b(RVG|REGNR|REG)[\s:.]*(\d{4,7})\b", re.IGNORECASE)
INLINE_PRICE_PATTERNS = (
    re.compile(r"€\s*(\d[\d.,]*)"),
    re.compile(r"\b(\d{1,3}(?:\.\d{3})*,\d+)\b"),
)
DATE_PATTERN = re.compile(r"\b(?:(\d{2})-(\d{2})-(\d{4})|(\d{4})-(\d{2})-(\d{2}))\b")
YEAR_PATTERN = re.compile(r"(?:19|20)\d{2}")

# Wrapped article names often start with a strength ("1000 mg ..."), not a registration number.
DOSAGE_UNITS = {"mg", "g", "mcg", "ug", "\u00b5g", "ml", "l", "ie", "iu", "%", "stuks", "st", "mmol"}


@dataclass(frozen=True)
class PriceCeilingRow:
    registration_number: str
    unit_price_eur: float
    valid_from: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class SectionCandidate:
    index: int
    lines: Tuple[str, ...]


@dataclass(frozen=True)
class PriceFound:
    section: SectionCandidate
    unit_price: float
    unit: str
    line_number: int


@dataclass(frozen=True)
class NoPriceFound:
    section: SectionCandidate
    reason: str


@dataclass(frozen=True)
class RegistrationTokens:
    section_index: int
    tokens: Tuple[str, ...]
    listing_found: bool


@dataclass
class PriceListReport:
    mode: str = "sections"
    sections_total: int = 0
    sections_without_price: int = 0
    sections_without_registrations: int = 0
    unpriced_registrations: int = 0
    overridden_duplicates: int = 0
    rows: int = 0
    issues: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def degraded(self) -> bool:
        return bool(
            self.sections_without_price
            or self.sections_without_registrations
            or self.unpriced_registrations
            or self.rows == 0
        )


@dataclass
class PriceListResult:
    rows: List[PriceCeilingRow]
    report: PriceListReport

    @property
    def ok(self) -> bool:
        return self.report.ok

    def by_registration(self) -> Dict[str, PriceCeilingRow]:
        return {row.registration_number: row for row in self.rows}


def normalize_registration(value: object) -> str:
    return re.sub(r"[^0-9A-Z/]", "", str(value or "").upper())


def _find_date(text: str) -> Optional[str]:
    match = DATE_PATTERN.search(text)
    if not match:
        return None
    if match.group(1):
        day, month, year = match.group(1), match.group(2), match.group(3)
    else:
        year, month, day = match.group(4), match.group(5), match.group(6)
    return f"{year}-{month}-{day}"


def split_sections(text: str, header_pattern: str = PRICE_SECTION_HEADER) -> List[SectionCandidate]:
    """Split the document on the recurring price-group header.

    Text before the first header is preamble and is not returned.
    """
    parts = re.split(header_pattern, text, flags=re.IGNORECASE)
    sections: List[SectionCandidate] = []
    for index, part in enumerate(parts[1:], start=1):
        lines = tuple(line.strip() for line in part.splitlines() if line.strip())
        sections.append(SectionCandidate(index=index, lines=lines))
    return sections


def _listing_start(section: SectionCandidate, subheader_pattern: str) -> Optional[int]:
    pattern = re.compile(subheader_pattern, re.IGNORECASE)
    for position, line in enumerate(section.lines):
        if pattern.match(line):
            return position
    return None


def find_section_price(
    section: SectionCandidate,
    search_lines: int = PRICE_SEARCH_LINES,
    subheader_pattern: str = REGISTRATION_SUBHEADER,
) -> Union[PriceFound, NoPriceFound]:
    listing = _listing_start(section, subheader_pattern)
    limit = search_lines if listing is None else min(search_lines, listing)
    for position, line in enumerate(section.lines[:limit]):
        for match in PRICE_PATTERN.finditer(line):
            price = parse_number(match.group(1), math.nan)
            if math.isfinite(price):
                return PriceFound(section=section, unit_price=price, unit=match.group(2).lower(), line_number=position)
    return NoPriceFound(section=section, reason=f"geen '<bedrag> per <eenheid>' in de eerste {limit} regels")


def _registration_from_line(line: str) -> Optional[str]:
    match = REGISTRATION_LINE_PATTERN.match(line)
    if not match:
        return None
    token = match.group("token").rstrip(".-")
    prefix = match.group("prefix")
    if not any(ch.isdigit() for ch in token):
        return None
    if prefix is None:
        # Bare numbers need article text after them; dates and years never qualify.
        rest = (match.group("rest") or "").split()
        if len(token) < 4 or not rest:
            return None
        if DATE_PATTERN.fullmatch(token) or YEAR_PATTERN.fullmatch(token):
            return None
        if rest[0].lower().strip(".,") in DOSAGE_UNITS:
            return None
    registration = normalize_registration(f"{prefix or ''}{token}")
    return registration or None


def find_registration_tokens(
    section: SectionCandidate,
    subheader_pattern: str = REGISTRATION_SUBHEADER,
) -> RegistrationTokens:
    listing = _listing_start(section, subheader_pattern)
    if listing is None:
        return RegistrationTokens(section_index=section.index, tokens=(), listing_found=False)
    tokens = []
    for line in section.lines[listing + 1:]:
        registration = _registration_from_line(line)
        if registration:
            tokens.append(registration)
    return RegistrationTokens(section_index=section.index, tokens=tuple(tokens), listing_found=True)


def _store(rows: Dict[str, PriceCeilingRow], row: PriceCeilingRow, report: PriceListReport) -> None:
    # Documents list revisions in reading order: the last entry wins.
    if row.registration_number in rows:
        report.overridden_duplicates += 1
        del rows[row.registration_number]
    rows[row.registration_number] = row


def _scan_inline(text: str, valid_from: Optional[str], report: PriceListReport) -> Dict[str, PriceCeilingRow]:
    rows: Dict[str, PriceCeilingRow] = {}
    for line in text.splitlines():
        registration_match = INLINE_REGISTRATION_PATTERN.search(line)
        if not registration_match:
            continue
        remainder = line[registration_match.end():]
        price = math.nan
        for pattern in INLINE_PRICE_PATTERNS:
            price_match = pattern.search(remainder)
            if price_match:
                price = parse_number(price_match.group(1), math.nan)
                break
        if not math.isfinite(price):
            report.unpriced_registrations += 1
            continue
        prefix, digits = registration_match.group(1).upper(), registration_match.group(2)
        registration = normalize_registration(f"RVG{digits}" if prefix == "RVG" else digits)
        _store(rows, PriceCeilingRow(registration, price, valid_from), report)
    return rows


def parse_price_list_text(
    text: str,
    header_pattern: str = PRICE_SECTION_HEADER,
    subheader_pattern: str = REGISTRATION_SUBHEADER,
    search_lines: int = PRICE_SEARCH_LINES,
) -> PriceListResult:
    """Extract (registration number, unit price) facts from price-list text.

    Each price-group section must yield its own "<amount> per <unit>" price;
    sections without one are skipped and counted, never filled with the
    previous section's price. When the document has no section headers at
    all, lines carrying both an RVG/REG number and an amount are used.
    """
    report = PriceListReport()
    document_date = _find_date(text)
    sections = split_sections(text, header_pattern)

    if not sections:
        report.mode = "inline"
        report.issues.append("Geen sectiekoppen gevonden; regels met registratienummer en bedrag gebruikt")
        rows = _scan_inline(text, document_date, report)
    else:
        rows = {}
        for section in sections:
            report.sections_total += 1
            price = find_section_price(section, search_lines, subheader_pattern)
            tokens = find_registration_tokens(section, subheader_pattern)

            if isinstance(price, NoPriceFound):
                report.sections_without_price += 1
                report.unpriced_registrations += len(tokens.tokens)
                report.issues.append(f"Sectie {section.index}: {price.reason}")
                logger.debug("Section %d skipped: %s", section.index, price.reason)
                continue
            if not tokens.tokens:
                report.sections_without_registrations += 1
                reason = "geen registratienummers" if tokens.listing_found else "geen registratielijst"
                report.issues.append(f"Sectie {section.index}: {reason}")
                continue

            listing = _listing_start(section, subheader_pattern) or 0
            valid_from = _find_date("\n".join(section.lines[:listing])) or document_date
            for registration in tokens.tokens:
                _store(rows, PriceCeilingRow(registration, price.unit_price, valid_from), report)

    result_rows = list(rows.values())
    report.rows = len(result_rows)
    if not result_rows:
        report.issues.append("Geen eenheidsprijzen gevonden; controleer de PDF of upload .xlsx/.csv")
    logger.info(
        "Price list parsed: %d rows, %d/%d sections skipped",
        report.rows,
        report.sections_without_price + report.sections_without_registrations,
        report.sections_total,
    )
    return PriceListResult(rows=result_rows, report=report)


SHEET_ALIASES = {
    "registration_number": (
        "registration number", "registratienummer", "reg", "regnr", "rvg", "rvg nr", "registration",
    ),
    "unit_price_eur": (
        "unit price eur", "unit price", "unitprice", "eenheidsprijs", "eenheidsprijs eur",
        "prijs per eenheid", "maximumprijs",
    ),
    "valid_from": ("valid from", "geldig vanaf", "ingangsdatum"),
}


def _sheet_columns(header: List[str]) -> Dict[str, str]:
    normalized = {normalize_header_name(name): name for name in header}
    columns: Dict[str, str] = {}
    for target, aliases in SHEET_ALIASES.items():
        for alias in aliases:
            if alias in normalized:
                columns[target] = normalized[alias]
                break
    return columns


def read_price_list_sheet(table: TabularData) -> PriceListResult:
    """Read price-ceiling rows from a spreadsheet upload instead of a PDF."""
    report = PriceListReport(mode="sheet")
    columns = _sheet_columns(table.header)
    for target in ("registration_number", "unit_price_eur"):
        if target not in columns:
            report.errors.append(f"Ontbrekende kolom: '{target}'")
    if report.errors:
        return PriceListResult(rows=[], report=report)

    rows: Dict[str, PriceCeilingRow] = {}
    skipped = 0
    for record in table.records:
        registration = normalize_registration(record.get(columns["registration_number"], ""))
        price = parse_number(record.get(columns["unit_price_eur"], ""), math.nan)
        if not registration or not math.isfinite(price):
            skipped += 1
            continue
        valid_from = None
        if "valid_from" in columns:
            raw_date = str(record.get(columns["valid_from"], "")).strip()
            valid_from = _find_date(raw_date) or raw_date or None
        _store(rows, PriceCeilingRow(registration, price, valid_from), report)

    if skipped:
        report.issues.append(f"{skipped} rijen zonder registratienummer of geldige prijs overgeslagen")
    result_rows = list(rows.values())
    report.rows = len(result_rows)
    return PriceListResult(rows=result_rows, report=report)
