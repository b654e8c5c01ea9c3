from __future__ import annotations

import logging
import math
import re
from typing import Dict, Iterable, List, Optional

import pandas as pd

from pharmagtn.master_data import PRODUCTS, MasterDataRepository, Product
from pharmagtn.price_list import PriceCeilingRow, normalize_registration
from pharmagtn.settings import PRICE_CEILING_THRESHOLD_PCT

__all__ = ["compare_price_ceiling", "compare_with_repository", "parse_pack", "COMPARISON_COLUMNS"]

logger = logging.getLogger(__name__)

COMPARISON_COLUMNS = [
    "registration_number",
    "sku",
    "name",
    "zi_number",
    "pack",
    "aip_current",
    "unit_price_eur",
    "aip_suggested",
    "diff_eur",
    "diff_pct",
    "update",
    "above_ceiling",
    "note",
]

MULTI_PACK_PATTERN = re.compile(r"(\d+)\s*[xX*]\s*(\d+)")
NUMBER_PATTERN = re.compile(r"\d+")


def parse_pack(pack_size: object) -> Optional[int]:
    """Units per pack from a free-text pack size ("30 st", "3 x 10")."""
    text = "" if pack_size is None else str(pack_size)
    match = MULTI_PACK_PATTERN.search(text)
    if match:
        pack = int(match.group(1)) * int(match.group(2))
    else:
        number = NUMBER_PATTERN.search(text)
        if not number:
            return None
        pack = int(number.group(0))
    return pack if pack > 0 else None


def _digits(registration: str) -> str:
    return re.sub(r"\D", "", registration)


def _ceiling_index(ceiling_rows: Iterable[PriceCeilingRow]) -> Dict[str, PriceCeilingRow]:
    index: Dict[str, PriceCeilingRow] = {}
    for row in ceiling_rows:
        key = normalize_registration(row.registration_number)
        index[key] = row
        digits = _digits(key)
        if digits:
            index.setdefault(digits, row)
    return index


def _lookup(index: Dict[str, PriceCeilingRow], registration: str) -> Optional[PriceCeilingRow]:
    if not registration:
        return None
    return index.get(registration) or index.get(_digits(registration))


def compare_price_ceiling(
    products: Iterable[Product],
    ceiling_rows: Iterable[PriceCeilingRow],
    threshold_pct: float = PRICE_CEILING_THRESHOLD_PCT,
) -> pd.DataFrame:
    """Compare every product's current AIP with unit ceiling price × pack.

    A zero current AIP is always flagged for update; rows that cannot be
    compared carry a Dutch note naming what is missing.
    """
    if not math.isfinite(threshold_pct):
        threshold_pct = PRICE_CEILING_THRESHOLD_PCT
    index = _ceiling_index(ceiling_rows)

    out: List[Dict[str, object]] = []
    for product in products:
        registration = normalize_registration(product.registration_number)
        pack = parse_pack(product.pack_size)
        current = product.aip_eur if product.aip_eur is not None and math.isfinite(product.aip_eur) else None
        ceiling = _lookup(index, registration)
        unit = ceiling.unit_price_eur if ceiling else None
        suggested = round(unit * pack, 4) if unit is not None and pack is not None else None

        diff_eur = diff_pct = None
        update = False
        notes = []
        if current is not None and suggested is not None:
            diff_eur = round(suggested - current, 4)
            if current != 0:
                diff_pct = round(diff_eur / current, 6)
                update = abs(diff_pct) >= threshold_pct
            else:
                update = True
        else:
            if ceiling is None:
                notes.append("Geen eenheidsprijs in Staatscourant")
            if pack is None:
                notes.append("pack ontbreekt")
            if current is None:
                notes.append("huidige AIP ontbreekt")

        note = "; ".join(notes)
        out.append(
            {
                "registration_number": registration,
                "sku": product.sku,
                "name": product.name,
                "zi_number": product.zi_number,
                "pack": pack,
                "aip_current": current,
                "unit_price_eur": unit,
                "aip_suggested": suggested,
                "diff_eur": diff_eur,
                "diff_pct": diff_pct,
                "update": update,
                "above_ceiling": current is not None and suggested is not None and current > suggested,
                "note": note[:1].upper() + note[1:] if note else None,
            }
        )

    frame = pd.DataFrame(out, columns=COMPARISON_COLUMNS)
    logger.info("Compared %d products, %d flagged for update", len(frame), int(frame["update"].sum()) if len(frame) else 0)
    return frame


def compare_with_repository(
    repository: MasterDataRepository,
    ceiling_rows: Iterable[PriceCeilingRow],
    threshold_pct: float = PRICE_CEILING_THRESHOLD_PCT,
) -> pd.DataFrame:
    return compare_price_ceiling(repository.get_all(PRODUCTS), ceiling_rows, threshold_pct)
