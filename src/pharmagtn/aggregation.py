from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from pharmagtn.normalization import CanonicalRow, rows_to_frame
from pharmagtn.periods import MONTH, month_to_quarter, normalize_period, period_sort_key
from pharmagtn.schema import DISCOUNT_FIELDS, REBATE_FIELDS
from pharmagtn.settings import NEAR_ZERO

__all__ = ["ContractAnalysis", "analyze_contracts", "METRICS", "LEVELS", "CLAIM_BASES", "GRANULARITIES"]

logger = logging.getLogger(__name__)

METRICS = ("revenue", "net_revenue", "units")
LEVELS = ("customer", "customer_sku")
CLAIM_BASES = ("claim", "deductions")
GRANULARITIES = ("month", "quarter")

BASE_COLUMNS = ["contract", "period", "revenue", "claim_amount", "units", "net_revenue"]
TOTAL_COLUMNS = ["period"] + [f"total_{metric}" for metric in METRICS] + [
    f"total_{metric}_growth_pct" for metric in METRICS
]
AGGREGATE_COLUMNS = (
    BASE_COLUMNS
    + [f"{metric}_growth_pct" for metric in METRICS]
    + [f"total_{metric}_growth_pct" for metric in METRICS]
    + [f"outperform_{metric}" for metric in METRICS]
    + [f"{metric}_contribution_share" for metric in METRICS]
)

RowsInput = Union[pd.DataFrame, Iterable[CanonicalRow]]


def _frame_records(frame: pd.DataFrame) -> List[Dict[str, object]]:
    cleaned = frame.astype(object).where(frame.notna(), None)
    return cleaned.to_dict("records")


@dataclass
class ContractAnalysis:
    aggregates: pd.DataFrame
    totals: pd.DataFrame
    latest_snapshot: pd.DataFrame
    level: str = "customer_sku"
    claim_basis: str = "claim"
    granularity: str = "month"

    @property
    def latest_period(self) -> Optional[str]:
        if self.totals.empty:
            return None
        return str(self.totals["period"].iloc[-1])

    def to_records(self) -> Dict[str, List[Dict[str, object]]]:
        return {
            "aggregates": _frame_records(self.aggregates),
            "totals": _frame_records(self.totals),
            "latest": _frame_records(self.latest_snapshot),
        }


def _safe_growth(previous: pd.Series, current: pd.Series) -> pd.Series:
    # No prior value, a prior of ~0 and a current of ~0 all leave growth undefined.
    valid = previous.notna() & (previous.abs() >= NEAR_ZERO) & (current.abs() >= NEAR_ZERO)
    return ((current - previous) / previous.where(valid)).where(valid)


def _outperform(growth: pd.Series, total_growth: pd.Series) -> pd.Series:
    both = growth.notna() & total_growth.notna()
    return pd.Series(np.where(both, growth > total_growth, None), index=growth.index, dtype=object)


def _input_frame(rows: RowsInput, claim_basis: str, granularity: str) -> pd.DataFrame:
    frame = rows.copy() if isinstance(rows, pd.DataFrame) else rows_to_frame(list(rows))
    if claim_basis == "claim":
        claim = pd.to_numeric(frame["claim_amount"], errors="coerce").fillna(0.0)
    else:
        deduction_columns = list(DISCOUNT_FIELDS + REBATE_FIELDS)
        claim = frame[deduction_columns].apply(pd.to_numeric, errors="coerce").fillna(0.0).sum(axis=1)

    df = pd.DataFrame(
        {
            "customer": frame["customer"].astype(str),
            "sku": frame["sku"].astype(str),
            "period": frame["period"].astype(str),
            "revenue": pd.to_numeric(frame["gross"], errors="coerce").fillna(0.0),
            "claim_amount": claim,
            "units": pd.to_numeric(frame["units"], errors="coerce").fillna(0.0),
        }
    )
    if granularity == "quarter":
        df["period"] = df["period"].map(_quarter_key)
    return df


def _quarter_key(key: str) -> str:
    period = normalize_period(key)
    if period is None or period.kind != MONTH:
        return key
    return month_to_quarter(period.key)


def _empty_analysis(level: str, claim_basis: str, granularity: str) -> ContractAnalysis:
    return ContractAnalysis(
        aggregates=pd.DataFrame(columns=AGGREGATE_COLUMNS),
        totals=pd.DataFrame(columns=TOTAL_COLUMNS),
        latest_snapshot=pd.DataFrame(columns=AGGREGATE_COLUMNS),
        level=level,
        claim_basis=claim_basis,
        granularity=granularity,
    )


def _compute_totals(grouped: pd.DataFrame) -> pd.DataFrame:
    totals = (
        grouped.groupby("period", dropna=False)
        .agg(
            total_revenue=("revenue", "sum"),
            total_net_revenue=("net_revenue", "sum"),
            total_units=("units", "sum"),
        )
        .reset_index()
    )
    totals["sort_key"] = totals["period"].map(period_sort_key)
    totals = totals.sort_values("sort_key").reset_index(drop=True)
    for metric in METRICS:
        column = f"total_{metric}"
        totals[f"{column}_growth_pct"] = _safe_growth(totals[column].shift(1), totals[column])
    return totals.drop(columns="sort_key")[TOTAL_COLUMNS]


def analyze_contracts(
    rows: RowsInput,
    level: str = "customer_sku",
    claim_basis: str = "claim",
    granularity: str = "month",
) -> ContractAnalysis:
    """Build the per-contract time series, the totals and the latest snapshot.

    ``level`` picks the contract key (customer, or customer plus SKU);
    ``claim_basis`` chooses between the claim column and the sum of
    discounts and rebates; ``granularity="quarter"`` rolls months up.
    Growth values are ratios (0.5 means +50%); undefined values are NaN in
    the frames and None in ``to_records()``.
    """
    if level not in LEVELS:
        raise ValueError(f"Unknown contract level: {level}")
    if claim_basis not in CLAIM_BASES:
        raise ValueError(f"Unknown claim basis: {claim_basis}")
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity: {granularity}")

    df = _input_frame(rows, claim_basis, granularity)
    if df.empty:
        return _empty_analysis(level, claim_basis, granularity)

    if level == "customer_sku":
        df["contract"] = df["customer"] + " | " + df["sku"]
    else:
        df["contract"] = df["customer"]

    grouped = (
        df.groupby(["contract", "period"], dropna=False)
        .agg(revenue=("revenue", "sum"), claim_amount=("claim_amount", "sum"), units=("units", "sum"))
        .reset_index()
    )
    grouped["net_revenue"] = grouped["revenue"] - grouped["claim_amount"]
    grouped["sort_key"] = grouped["period"].map(period_sort_key)
    grouped = grouped.sort_values(["contract", "sort_key"]).reset_index(drop=True)

    for metric in METRICS:
        previous = grouped.groupby("contract")[metric].shift(1)
        grouped[f"{metric}_growth_pct"] = _safe_growth(previous, grouped[metric])
        # First period of a contract contributes a zero delta.
        grouped[f"_delta_{metric}"] = (grouped[metric] - previous).fillna(0.0)

    totals = _compute_totals(grouped)
    growth_columns = [f"total_{metric}_growth_pct" for metric in METRICS]
    grouped = grouped.merge(totals[["period"] + growth_columns], on="period", how="left")

    for metric in METRICS:
        grouped[f"outperform_{metric}"] = _outperform(
            grouped[f"{metric}_growth_pct"], grouped[f"total_{metric}_growth_pct"]
        )
        delta = grouped[f"_delta_{metric}"]
        period_delta = grouped.groupby("period")[f"_delta_{metric}"].transform("sum")
        grouped[f"{metric}_contribution_share"] = delta / period_delta.where(period_delta.abs() >= NEAR_ZERO)

    grouped = grouped.sort_values(["contract", "sort_key"]).reset_index(drop=True)
    latest_key = grouped["sort_key"].max()
    aggregates = grouped[AGGREGATE_COLUMNS]
    latest = grouped.loc[grouped["sort_key"] == latest_key, AGGREGATE_COLUMNS].reset_index(drop=True)

    logger.info(
        "Analyzed %d contracts over %d periods (%s, %s)",
        aggregates["contract"].nunique(),
        len(totals),
        level,
        claim_basis,
    )
    return ContractAnalysis(
        aggregates=aggregates,
        totals=totals,
        latest_snapshot=latest,
        level=level,
        claim_basis=claim_basis,
        granularity=granularity,
    )
