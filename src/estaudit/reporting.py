from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from .aggregate import branch_label
from .models import BranchSummary, ResolvedEstimate

ESTIMATE_COLUMNS = [
    "ESTIMATE_ID",
    "JOB_NAME",
    "BRANCH",
    "STATUS",
    "CREATED_BY",
    "TRUE_COST",
    "SUB_COST",
    "BASE_COST",
    "FINAL_PRICE",
    "ADJUSTED_PRICE",
    "TAX_TREATMENT",
    "MULTIPLIER",
    "MULTIPLIER_SOURCE",
    "MATCHED_RANGE",
    "DISCOUNT_PROVIDED",
    "DISCOUNT_ADJUSTED_MULTIPLIER",
    "AFTER_SUB_MULTIPLIER",
    "EXPECTED_PRICE",
    "EXPECTED_PRICE_AFTER_DISCOUNT",
    "ERROR_PERCENTAGE",
    "ERROR_SEVERITY",
    "RETAIL_PRICE",
    "CREATED_AT",
    "SOLD_AT",
]

SUMMARY_COLUMNS = ["BRANCH", "ESTIMATE_COUNT", "TOTAL_ADJUSTED_VALUE", "AVERAGE_MULTIPLIER"]


def _nan(value):
    return np.nan if value is None else value


def estimates_frame(resolved: Sequence[ResolvedEstimate]) -> pd.DataFrame:
    rows = []
    for item in resolved:
        raw = item.estimate
        matched = item.resolution.matched_range
        rows.append(
            {
                "ESTIMATE_ID": raw.id,
                "JOB_NAME": raw.name or "Unnamed Estimate",
                "BRANCH": branch_label(raw.branch_name),
                "STATUS": raw.status,
                "CREATED_BY": raw.created_by,
                "TRUE_COST": item.split.true_cost,
                "SUB_COST": item.split.sub_cost,
                "BASE_COST": item.base_cost,
                "FINAL_PRICE": _nan(raw.final_price),
                "ADJUSTED_PRICE": _nan(item.adjusted_price),
                "TAX_TREATMENT": item.tax.treatment.value,
                "MULTIPLIER": _nan(item.multiplier),
                "MULTIPLIER_SOURCE": item.multiplier_source.value,
                "MATCHED_RANGE": matched.label if matched is not None else "",
                "DISCOUNT_PROVIDED": raw.discount_provided,
                "DISCOUNT_ADJUSTED_MULTIPLIER": _nan(item.reconciliation.discount_adjusted_multiplier),
                "AFTER_SUB_MULTIPLIER": _nan(item.after_sub_multiplier),
                "EXPECTED_PRICE": _nan(item.reconciliation.expected_price),
                "EXPECTED_PRICE_AFTER_DISCOUNT": _nan(item.reconciliation.expected_price_after_discount),
                "ERROR_PERCENTAGE": item.error_percentage,
                "ERROR_SEVERITY": item.error_severity.value,
                "RETAIL_PRICE": _nan(raw.retail_cost),
                "CREATED_AT": raw.created_at,
                "SOLD_AT": raw.updated_at,
            }
        )
    frame = pd.DataFrame(rows, columns=ESTIMATE_COLUMNS)
    for column in ("CREATED_AT", "SOLD_AT"):
        frame[column] = pd.to_datetime(frame[column], errors="coerce", utc=True)
    return frame


def summary_frame(summaries: Sequence[BranchSummary]) -> pd.DataFrame:
    rows = [
        {
            "BRANCH": summary.branch_name,
            "ESTIMATE_COUNT": summary.estimate_count,
            "TOTAL_ADJUSTED_VALUE": summary.total_adjusted_value,
            "AVERAGE_MULTIPLIER": _nan(summary.average_multiplier),
        }
        for summary in summaries
    ]
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def make_summary_text(summaries: Sequence[BranchSummary], resolved: Sequence[ResolvedEstimate]) -> str:
    total_value = float(sum(summary.total_adjusted_value for summary in summaries))
    table = summary_frame(summaries)
    if not table.empty:
        table["TOTAL_ADJUSTED_VALUE"] = table["TOTAL_ADJUSTED_VALUE"].map(lambda v: f"${v:,.2f}")
        table["AVERAGE_MULTIPLIER"] = table["AVERAGE_MULTIPLIER"].map(
            lambda v: "N/A" if pd.isna(v) else f"{v:.2f}"
        )
    severities = pd.Series([item.error_severity.value for item in resolved], dtype=object)
    severity_counts = severities.value_counts().to_dict() if not severities.empty else {}
    severity_text = ", ".join(f"{name}={severity_counts.get(name, 0)}" for name in ("Low", "Medium", "High", "Unknown"))
    return (
        f"Estimates audited: {len(resolved)} across {len(summaries)} branch(es); "
        f"total adjusted value ${total_value:,.2f}.\n"
        f"Error severity: {severity_text}.\n"
        f"Per-branch summary:\n{table.to_string(index=False) if not table.empty else '(none)'}\n"
    )
