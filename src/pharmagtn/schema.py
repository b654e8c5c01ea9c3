from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

__all__ = [
    "FieldSpec",
    "Schema",
    "FIELDS",
    "IDENTITY_FIELDS",
    "DISCOUNT_FIELDS",
    "REBATE_FIELDS",
    "INCOME_FIELDS",
    "NUMERIC_FIELDS",
    "GTN_SCHEMA",
    "CONTRACT_SCHEMA",
]

CORE = "core"
FULL = "full"
OPTIONAL = "optional"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    canonical: str
    label: str
    aliases: Tuple[str, ...] = ()


# Aliases are compared after header normalization, so "Aantal_Units",
# "aantal-units" and "aantal units" are the same alias.
FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(
        "product_group",
        "product group",
        "Product Group Name",
        ("pg", "productgroep", "productgroepnaam", "product family", "productfamilie", "therapeutic area"),
    ),
    FieldSpec(
        "sku",
        "sku",
        "SKU Name",
        ("sku code", "productcode", "product", "artikel", "artikelcode", "artikelnummer", "code", "item"),
    ),
    FieldSpec(
        "customer",
        "customer",
        "Customer Name (Sold-to)",
        ("customer name", "sold to", "klant", "klantnaam", "client", "account", "buyer", "afnemer", "groothandel"),
    ),
    FieldSpec(
        "period",
        "period",
        "Fiscal year / period",
        ("fiscal period", "fy period", "periode", "month", "maand", "yyyy mm", "datum"),
    ),
    FieldSpec(
        "gross",
        "gross sales",
        "Sum of Gross Sales",
        ("gross", "sum gross", "bruto omzet", "brutoomzet", "omzet", "revenue", "sales", "turnover"),
    ),
    FieldSpec(
        "d_channel",
        "channel discounts",
        "Sum of Channel Discounts",
        ("channel discount", "kanaalkorting", "kanaal korting"),
    ),
    FieldSpec(
        "d_customer",
        "customer discounts",
        "Sum of Customer Discounts",
        ("customer discount", "klantkorting", "klant korting"),
    ),
    FieldSpec(
        "d_product",
        "product discounts",
        "Sum of Product Discounts",
        ("product discount", "productkorting", "product korting"),
    ),
    FieldSpec(
        "d_volume",
        "volume discounts",
        "Sum of Volume Discounts",
        ("volume discount", "volumekorting", "staffelkorting"),
    ),
    FieldSpec(
        "d_value",
        "value discounts",
        "Sum of Value Discounts",
        ("value discount", "waardekorting"),
    ),
    FieldSpec(
        "d_other_sales",
        "other sales discounts",
        "Sum of Other Sales Discounts",
        ("other sales discount", "overige verkoopkorting", "overige kortingen"),
    ),
    FieldSpec(
        "d_mandatory",
        "mandatory discounts",
        "Sum of Mandatory Discounts",
        ("mandatory discount", "verplichte korting", "wettelijke korting"),
    ),
    FieldSpec(
        "d_local",
        "discount local",
        "Sum of Discount Local",
        ("local discount", "lokale korting"),
    ),
    FieldSpec(
        "invoiced",
        "invoiced sales",
        "Sum of Invoiced Sales",
        ("invoiced", "gefactureerd", "gefactureerde omzet", "factuuromzet"),
    ),
    FieldSpec(
        "r_direct",
        "direct rebates",
        "Sum of Direct Rebates",
        ("direct rebate", "directe bonus", "directe rebate"),
    ),
    FieldSpec(
        "r_prompt",
        "prompt payment rebates",
        "Sum of Prompt Payment Rebates",
        ("prompt payment rebate", "prompt payment", "betalingskorting", "kredietbeperking"),
    ),
    FieldSpec(
        "r_indirect",
        "indirect rebates",
        "Sum of Indirect Rebates",
        ("indirect rebate", "indirecte bonus", "indirecte rebate"),
    ),
    FieldSpec(
        "r_mandatory",
        "mandatory rebates",
        "Sum of Mandatory Rebates",
        ("mandatory rebate", "verplichte rebate", "wettelijke rebate"),
    ),
    FieldSpec(
        "r_local",
        "rebate local",
        "Sum of Rebate Local",
        ("local rebate", "lokale rebate", "lokale bonus"),
    ),
    FieldSpec(
        "inc_royalty",
        "royalty income",
        "Sum of Royalty Income",
        ("royalty", "royalties", "royalty inkomsten"),
    ),
    FieldSpec(
        "inc_other",
        "other income",
        "Sum of Other Income",
        ("overige inkomsten", "overige opbrengsten"),
    ),
    FieldSpec(
        "net",
        "net sales",
        "Sum of Net Sales",
        ("net", "netto omzet", "nettoomzet", "netto"),
    ),
    FieldSpec(
        "units",
        "units",
        "Units",
        ("aantal units", "aantal", "qty", "quantity", "stuks", "stuks afzet", "volume"),
    ),
    FieldSpec(
        "claim_amount",
        "claim amount",
        "Claim Amount",
        ("claimbedrag", "claim", "uitbetaalde korting", "uitbetaling", "rebate amount"),
    ),
)

FIELD_BY_NAME: Dict[str, FieldSpec] = {spec.name: spec for spec in FIELDS}

IDENTITY_FIELDS = ("product_group", "sku", "customer", "period")
DISCOUNT_FIELDS = (
    "d_channel",
    "d_customer",
    "d_product",
    "d_volume",
    "d_value",
    "d_other_sales",
    "d_mandatory",
    "d_local",
)
REBATE_FIELDS = ("r_direct", "r_prompt", "r_indirect", "r_mandatory", "r_local")
INCOME_FIELDS = ("inc_royalty", "inc_other")
NUMERIC_FIELDS = (
    ("gross",)
    + DISCOUNT_FIELDS
    + ("invoiced",)
    + REBATE_FIELDS
    + INCOME_FIELDS
    + ("net", "units", "claim_amount")
)


@dataclass(frozen=True)
class Schema:
    name: str
    levels: Dict[str, str]

    @property
    def fields(self) -> List[FieldSpec]:
        return [FIELD_BY_NAME[name] for name in self.levels]

    def fields_with_level(self, level: str) -> List[str]:
        return [name for name, value in self.levels.items() if value == level]

    @property
    def core(self) -> List[str]:
        return self.fields_with_level(CORE)

    @property
    def full(self) -> List[str]:
        return self.fields_with_level(FULL)

    def label(self, name: str) -> str:
        return FIELD_BY_NAME[name].label


def _levels(core: Tuple[str, ...], full: Tuple[str, ...]) -> Dict[str, str]:
    levels: Dict[str, str] = {}
    for spec in FIELDS:
        if spec.name in core:
            levels[spec.name] = CORE
        elif spec.name in full:
            levels[spec.name] = FULL
        else:
            levels[spec.name] = OPTIONAL
    return levels


GTN_SCHEMA = Schema(
    name="gtn",
    levels=_levels(
        core=("product_group", "sku", "customer", "period", "gross"),
        full=DISCOUNT_FIELDS + ("invoiced",) + REBATE_FIELDS + INCOME_FIELDS + ("net",),
    ),
)

CONTRACT_SCHEMA = Schema(
    name="contracts",
    levels=_levels(
        core=("sku", "customer", "period", "gross"),
        full=("units", "claim_amount"),
    ),
)
