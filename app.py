from __future__ import annotations

import logging
import sys
from pathlib import Path

import pandas as pd
import streamlit as st
from streamlit.delta_generator import DeltaGenerator

ROOT_DIR = Path(__file__).resolve().parent
SRC_DIR = ROOT_DIR / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

from pharmagtn.errors import IngestionError
from pharmagtn.export import export_analysis_workbook, records_to_csv_bytes
from pharmagtn.master_data import products_from_table
from pharmagtn.normalization import ValidationReport
from pharmagtn.pipeline import analyze_upload, ingest_price_list, ingest_upload
from pharmagtn.price_ceiling import compare_price_ceiling
from pharmagtn.readers import read_table

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(message)s")


def create_download_button(label: str, df: pd.DataFrame, filename: str) -> None:
    st.download_button(
        label=label,
        data=records_to_csv_bytes(df),
        file_name=filename,
        mime="text/csv",
    )


def show_report(report: ValidationReport) -> None:
    for error in report.errors:
        st.error(error)
    if report.corrected_count:
        st.info(f"{report.corrected_count} negatieve kortingen/rebates gecorrigeerd")
    if report.warnings:
        with st.expander(f"Waarschuwingen ({len(report.warnings)})"):
            st.markdown("\n".join(f"* {warning}" for warning in report.warnings))


def render_gtn_module(sidebar: DeltaGenerator) -> None:
    st.subheader("Gross-to-net upload")
    st.caption("Upload een CSV- of Excel-export (alleen het eerste werkblad wordt gelezen).")

    uploaded = st.file_uploader("Upload CSV of XLSX", type=["csv", "xlsx", "xlsm", "xls"], key="gtn_file")
    if uploaded is None:
        st.info("Voeg een bestand toe om de normalisatie te zien.")
        return

    result = ingest_upload(uploaded, uploaded.name)
    show_report(result.report)
    if not result.ok:
        return

    frame = result.to_frame()
    st.metric("Rijen", len(frame))
    totals = frame[["gross", "invoiced", "net"]].sum()
    columns = st.columns(3)
    columns[0].metric("Bruto omzet", f"{totals['gross']:,.2f}")
    columns[1].metric("Gefactureerd", f"{totals['invoiced']:,.2f}")
    columns[2].metric("Netto omzet", f"{totals['net']:,.2f}")

    st.dataframe(frame, use_container_width=True)
    create_download_button("Download genormaliseerde rijen", frame, "gtn_normalized.csv")


def render_contracts_module(sidebar: DeltaGenerator) -> None:
    st.subheader("Contractanalyse")
    st.caption("Kolommen: klant, sku, aantal_units, claimbedrag, omzet, periode.")

    level_label = sidebar.radio("Contractniveau", ["Klant + SKU", "Klant"], index=0)
    basis_label = sidebar.radio("Claimbasis", ["Claimbedrag", "Kortingen + rebates"], index=0)
    granularity_label = sidebar.radio("Periode", ["Maand", "Kwartaal"], index=0)
    level = "customer_sku" if level_label == "Klant + SKU" else "customer"
    claim_basis = "claim" if basis_label == "Claimbedrag" else "deductions"
    granularity = "month" if granularity_label == "Maand" else "quarter"

    uploaded = st.file_uploader("Upload CSV of XLSX", type=["csv", "xlsx", "xlsm", "xls"], key="contract_file")
    if uploaded is None:
        st.info("Voeg een contractbestand toe om de analyse te zien.")
        return

    result, analysis = analyze_upload(
        uploaded, uploaded.name, level=level, claim_basis=claim_basis, granularity=granularity
    )
    show_report(result.report)
    if analysis is None:
        return

    st.markdown(f"#### Laatste periode: {analysis.latest_period or '-'}")
    st.dataframe(analysis.latest_snapshot, use_container_width=True)

    st.markdown("#### Tijdreeks per contract")
    st.dataframe(analysis.aggregates, use_container_width=True)
    create_download_button("Download tijdreeks per contract", analysis.aggregates, "timeseries_contract.csv")

    st.markdown("#### Totaal per periode")
    st.dataframe(analysis.totals, use_container_width=True)
    create_download_button("Download totalen", analysis.totals, "timeseries_total.csv")

    st.download_button(
        label="Download Excel-rapport",
        data=export_analysis_workbook(result.rows, analysis),
        file_name="contract_performance.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


def render_price_ceiling_module(sidebar: DeltaGenerator) -> None:
    st.subheader("Maximumprijzen (WGP)")
    st.caption("Upload de Staatscourant-PDF of een spreadsheet met registratienummer en eenheidsprijs.")

    threshold = sidebar.number_input(
        "Drempel voor aanpassing (%)",
        min_value=0.0,
        value=0.1,
        step=0.05,
        format="%.2f",
    )

    price_file = st.file_uploader("Prijslijst (PDF, CSV of XLSX)", type=["pdf", "csv", "xlsx", "xls"], key="price_file")
    if price_file is None:
        st.info("Voeg een prijslijst toe om eenheidsprijzen te zien.")
        return

    price_list = ingest_price_list(price_file, price_file.name)
    for error in price_list.report.errors:
        st.error(error)
    if not price_list.ok:
        return
    if price_list.report.degraded:
        st.warning(
            f"Onvolledige extractie: {price_list.report.sections_without_price} secties zonder prijs, "
            f"{price_list.report.unpriced_registrations} registraties zonder prijs."
        )
    if price_list.report.issues:
        with st.expander(f"Details extractie ({len(price_list.report.issues)})"):
            st.markdown("\n".join(f"* {issue}" for issue in price_list.report.issues))

    prices = pd.DataFrame([row.to_dict() for row in price_list.rows])
    st.markdown(f"#### Eenheidsprijzen ({len(prices)})")
    st.dataframe(prices, use_container_width=True)
    if not prices.empty:
        create_download_button("Download eenheidsprijzen", prices, "price_ceiling_units.csv")

    products_file = st.file_uploader("Productbestand (CSV of XLSX)", type=["csv", "xlsx", "xls"], key="products_file")
    if products_file is None:
        return
    try:
        products = products_from_table(read_table(products_file, products_file.name))
    except IngestionError as exc:
        st.error(f"{products_file.name}: {exc}")
        return

    comparison = compare_price_ceiling(products, price_list.rows, threshold_pct=threshold / 100)
    st.markdown("#### Vergelijking AIP")
    st.dataframe(comparison, use_container_width=True)
    create_download_button("Download vergelijking", comparison, "aip_vs_ceiling.csv")


st.set_page_config(page_title="Pharma GTN", layout="wide")

sidebar = st.sidebar
module = sidebar.radio("Kies module", ["GTN upload", "Contracten", "Maximumprijzen"], index=0)

if module == "GTN upload":
    sidebar.header("Importregels")
    sidebar.markdown(
        """
        * CSV (UTF-8 of Windows-1252, scheidingsteken `;` of `,`) of Excel.
        * Verplicht: **Product Group Name**, **SKU Name**, **Customer Name (Sold-to)**, **Fiscal year / period**, **Sum of Gross Sales**.
        * Totaalregels worden overgeslagen; negatieve kortingen worden gecorrigeerd.
        """
    )
    st.title("Pharma GTN - Upload")
    render_gtn_module(sidebar)
elif module == "Contracten":
    sidebar.header("Analyse-instellingen")
    st.title("Pharma GTN - Contracten")
    render_contracts_module(sidebar)
else:
    sidebar.header("Vergelijkingsinstellingen")
    st.title("Pharma GTN - Maximumprijzen")
    render_price_ceiling_module(sidebar)
