from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, fields
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Union

from pharmagtn.amounts import parse_number
from pharmagtn.headers import normalize_header_name
from pharmagtn.price_list import normalize_registration
from pharmagtn.readers import TabularData

__all__ = [
    "Product",
    "Customer",
    "MasterDataRepository",
    "InMemoryMasterDataRepository",
    "products_from_table",
    "PRODUCTS",
    "CUSTOMERS",
]

logger = logging.getLogger(__name__)

PRODUCTS = "products"
CUSTOMERS = "customers"


@dataclass(frozen=True)
class Product:
    sku: str
    name: str = ""
    pack_size: str = ""
    registration_number: str = ""
    zi_number: str = ""
    aip_eur: Optional[float] = None
    min_order_qty: float = 0.0
    case_pack: str = ""

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class Customer:
    id: str
    name: str = ""
    discount_pct: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


Record = Union[Product, Customer, Mapping[str, object]]


class MasterDataRepository(Protocol):
    def get_all(self, kind: str) -> List[Union[Product, Customer]]:
        ...

    def replace_all(self, kind: str, records: Iterable[Record]) -> None:
        ...


def _as_mapping(record: Record) -> Mapping[str, object]:
    if isinstance(record, (Product, Customer)):
        return record.to_dict()
    return record


def _text(value: object) -> str:
    return "" if value is None else str(value).strip()


# Blank prices stay None, not 0.0.
def _optional_amount(value: object) -> Optional[float]:
    amount = parse_number(value, math.nan)
    return amount if math.isfinite(amount) else None


def _coerce_product(record: Record) -> Product:
    data = _as_mapping(record)
    return Product(
        sku=_text(data.get("sku")),
        name=_text(data.get("name")),
        pack_size=_text(data.get("pack_size")),
        registration_number=normalize_registration(data.get("registration_number")),
        zi_number=_text(data.get("zi_number")),
        aip_eur=_optional_amount(data.get("aip_eur")),
        min_order_qty=parse_number(data.get("min_order_qty"), 0.0),
        case_pack=_text(data.get("case_pack")),
    )


def _coerce_customer(record: Record) -> Customer:
    data = _as_mapping(record)
    return Customer(
        id=_text(data.get("id")),
        name=_text(data.get("name")),
        discount_pct=parse_number(data.get("discount_pct"), 0.0),
    )


COERCERS = {PRODUCTS: _coerce_product, CUSTOMERS: _coerce_customer}


class InMemoryMasterDataRepository:
    """Process-local product and customer store, one per instance."""

    def __init__(self) -> None:
        self._store: Dict[str, list] = {PRODUCTS: [], CUSTOMERS: []}

    def _check_kind(self, kind: str) -> None:
        if kind not in COERCERS:
            raise ValueError(f"Unknown master data kind: {kind}")

    def get_all(self, kind: str) -> List[Union[Product, Customer]]:
        self._check_kind(kind)
        return list(self._store[kind])

    def replace_all(self, kind: str, records: Iterable[Record]) -> None:
        self._check_kind(kind)
        coerce = COERCERS[kind]
        self._store[kind] = [coerce(record) for record in (records or [])]
        logger.debug("Replaced %d %s", len(self._store[kind]), kind)


PRODUCT_ALIASES = {
    "sku": ("sku", "artikelcode", "productcode"),
    "name": ("name", "productnaam", "product name", "artikelnaam", "naam"),
    "pack_size": ("pack size", "standaard verpakk grootte", "verpakkingsgrootte", "pack"),
    "registration_number": ("registration number", "registratienummer", "rvg", "reg", "regnr"),
    "zi_number": ("zi number", "zi nummer", "zi"),
    "aip_eur": ("aip eur", "aip", "apotheekinkoopprijs"),
    "min_order_qty": ("min order qty", "minimale bestelgrootte", "moq"),
    "case_pack": ("case pack", "doosverpakking"),
}


def products_from_table(table: TabularData) -> List[Product]:
    """Map an uploaded product master sheet onto Product records."""
    normalized = {normalize_header_name(name): name for name in table.header}
    columns: Dict[str, str] = {}
    for target, aliases in PRODUCT_ALIASES.items():
        for alias in aliases:
            if alias in normalized:
                columns[target] = normalized[alias]
                break

    names = [item.name for item in fields(Product)]
    products = []
    for record in table.records:
        data = {name: record.get(columns[name], "") for name in names if name in columns}
        product = _coerce_product(data)
        if product.sku or product.registration_number:
            products.append(product)
    return products
