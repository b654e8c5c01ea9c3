from __future__ import annotations

import pytest

from pharmagtn.master_data import (
    CUSTOMERS,
    PRODUCTS,
    Customer,
    InMemoryMasterDataRepository,
    Product,
    products_from_table,
)
from pharmagtn.readers import TabularData


def test_replace_all_coerces_numbers_and_registrations():
    repository = InMemoryMasterDataRepository()

    repository.replace_all(
        PRODUCTS,
        [
            {"sku": "P1", "name": "Paracetamol", "registration_number": "rvg 12.345", "aip_eur": "1,25", "min_order_qty": "x"},
            Product(sku="P2", aip_eur=3.0),
        ],
    )

    products = repository.get_all(PRODUCTS)
    assert products[0].registration_number == "RVG12345"
    assert products[0].aip_eur == pytest.approx(1.25)
    assert products[0].min_order_qty == 0.0
    assert products[1].sku == "P2"


def test_customers_get_default_discount():
    repository = InMemoryMasterDataRepository()

    repository.replace_all(CUSTOMERS, [{"id": "wh-a", "name": "Groothandel A"}, Customer(id="wh-b", discount_pct=2.5)])

    customers = repository.get_all(CUSTOMERS)
    assert customers[0].discount_pct == 0.0
    assert customers[1].discount_pct == 2.5


def test_repositories_do_not_share_state():
    first = InMemoryMasterDataRepository()
    second = InMemoryMasterDataRepository()

    first.replace_all(PRODUCTS, [{"sku": "P1"}])

    assert second.get_all(PRODUCTS) == []


def test_get_all_returns_a_copy():
    repository = InMemoryMasterDataRepository()
    repository.replace_all(PRODUCTS, [{"sku": "P1"}])

    repository.get_all(PRODUCTS).clear()

    assert len(repository.get_all(PRODUCTS)) == 1


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        InMemoryMasterDataRepository().get_all("orders")


def test_products_from_table_maps_dutch_headers():
    table = TabularData(
        header=["SKU", "Productnaam", "Standaard Verpakk. Grootte", "Registratienummer", "ZI-nummer", "AIP (EUR)"],
        records=[
            {"SKU": "P1", "Productnaam": "Paracetamol", "Standaard Verpakk. Grootte": "30 st",
             "Registratienummer": "RVG 12345", "ZI-nummer": "12345678", "AIP (EUR)": "24,00"},
            {"SKU": "", "Productnaam": "leeg", "Standaard Verpakk. Grootte": "",
             "Registratienummer": "", "ZI-nummer": "", "AIP (EUR)": ""},
        ],
    )

    products = products_from_table(table)

    assert len(products) == 1
    assert products[0] == Product(
        sku="P1",
        name="Paracetamol",
        pack_size="30 st",
        registration_number="RVG12345",
        zi_number="12345678",
        aip_eur=24.0,
    )


def test_blank_aip_is_kept_as_missing():
    repository = InMemoryMasterDataRepository()

    repository.replace_all(PRODUCTS, [{"sku": "P1", "aip_eur": ""}, {"sku": "P2", "aip_eur": "n.v.t."}, {"sku": "P3"}])

    assert [product.aip_eur for product in repository.get_all(PRODUCTS)] == [None, None, None]
