from __future__ import annotations

from typing import Dict, Sequence

import numpy as np
import pandas as pd

from .aggregate import branch_label
from .models import ResolvedEstimate

PATTERN_COLUMNS = [
    "NAME",
    "BRANCH",
    "HAS_SUB",
    "TRUE_COST",
    "SUB_COST",
    "BASE_COST",
    "FINAL_PRICE",
    "ACTUAL_MULTIPLIER",
    "BASE_MULTIPLIER",
    "CALCULATED_MULTIPLIER",
    "MULTIPLIER_SOURCE",
    "DIFFERENCE",
]


def implied_multipliers(item: ResolvedEstimate) -> tuple[float, float]:
    """Return ``(final/true_cost, final/base_cost)``; zero when the denominator is not positive."""

    final_price = item.estimate.final_price or 0.0
    actual = final_price / item.split.true_cost if item.split.true_cost > 0 else 0.0
    base = final_price / item.split.base_cost if item.split.base_cost > 0 else 0.0
    return actual, base


def multiplier_pattern_frame(resolved: Sequence[ResolvedEstimate]) -> pd.DataFrame:
    """
    Tabulate reconstructed versus implied multipliers, one row per estimate.

    ``DIFFERENCE`` is the absolute gap between the reconstructed multiplier and
    the one implied by ``final_price / true_cost``; it is NaN for unresolved
    estimates.
    """

    rows = []
    for item in resolved:
        actual, base = implied_multipliers(item)
        calculated = item.multiplier
        rows.append(
            {
                "NAME": item.estimate.name,
                "BRANCH": branch_label(item.branch_name),
                "HAS_SUB": item.split.has_sub_cost,
                "TRUE_COST": item.split.true_cost,
                "SUB_COST": item.split.sub_cost,
                "BASE_COST": item.split.base_cost,
                "FINAL_PRICE": item.estimate.final_price,
                "ACTUAL_MULTIPLIER": round(actual, 2),
                "BASE_MULTIPLIER": round(base, 2),
                "CALCULATED_MULTIPLIER": np.nan if calculated is None else calculated,
                "MULTIPLIER_SOURCE": item.multiplier_source.value,
                "DIFFERENCE": np.nan if calculated is None else round(abs(calculated - actual), 2),
            }
        )
    return pd.DataFrame(rows, columns=PATTERN_COLUMNS)


def pattern_statistics(frame: pd.DataFrame) -> Dict[str, object]:
    """Summarize a :func:`multiplier_pattern_frame` into counts and difference statistics."""

    stats: Dict[str, object] = {
        "total_analyzed": int(len(frame)),
        "with_sub_cost": int(frame["HAS_SUB"].astype(bool).sum()) if not frame.empty else 0,
        "source_counts": {},
        "mean_difference": None,
        "max_difference": None,
        "min_difference": None,
    }
    if frame.empty:
        return stats

    stats["source_counts"] = {
        str(source): int(count) for source, count in frame["MULTIPLIER_SOURCE"].value_counts(sort=False).items()
    }
    differences = pd.to_numeric(frame["DIFFERENCE"], errors="coerce").dropna().to_numpy(dtype=float)
    if differences.size:
        stats["mean_difference"] = float(np.mean(differences))
        stats["max_difference"] = float(np.max(differences))
        stats["min_difference"] = float(np.min(differences))
    return stats
