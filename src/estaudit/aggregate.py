from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import pandas as pd

from .models import UNASSIGNED_BRANCH, BranchSummary, ResolvedEstimate

_COLUMNS = ["BRANCH", "ADJUSTED_PRICE", "MULTIPLIER"]


def branch_label(branch_name: Optional[str]) -> str:
    """Grouping key: the raw branch name, or the sentinel label when it is missing or blank."""

    if branch_name is None or not str(branch_name).strip():
        return UNASSIGNED_BRANCH
    return str(branch_name)


def group_by_branch(resolved: Iterable[ResolvedEstimate]) -> Dict[str, List[ResolvedEstimate]]:
    """Group estimates by branch label, preserving first-seen branch order and input order."""

    groups: Dict[str, List[ResolvedEstimate]] = {}
    for item in resolved:
        groups.setdefault(branch_label(item.branch_name), []).append(item)
    return groups


def summarize_branches(resolved: Iterable[ResolvedEstimate]) -> List[BranchSummary]:
    """
    Fold resolved estimates into one :class:`BranchSummary` per branch.

    Every estimate counts toward ``estimate_count``; missing adjusted prices
    add zero; unresolved multipliers are excluded from the average.  A branch
    with no resolved multiplier reports ``average_multiplier=None``.
    """

    rows = [
        {
            "BRANCH": branch_label(item.branch_name),
            "ADJUSTED_PRICE": item.adjusted_price,
            "MULTIPLIER": item.multiplier,
        }
        for item in resolved
    ]
    if not rows:
        return []

    frame = pd.DataFrame(rows, columns=_COLUMNS)
    frame["ADJUSTED_PRICE"] = pd.to_numeric(frame["ADJUSTED_PRICE"], errors="coerce").fillna(0.0)
    frame["MULTIPLIER"] = pd.to_numeric(frame["MULTIPLIER"], errors="coerce")

    stats = frame.groupby("BRANCH", sort=False).agg(
        ESTIMATE_COUNT=("ADJUSTED_PRICE", "size"),
        TOTAL_ADJUSTED_VALUE=("ADJUSTED_PRICE", "sum"),
        AVERAGE_MULTIPLIER=("MULTIPLIER", "mean"),
    )

    summaries: List[BranchSummary] = []
    for branch, row in stats.iterrows():
        average = row["AVERAGE_MULTIPLIER"]
        summaries.append(
            BranchSummary(
                branch_name=str(branch),
                estimate_count=int(row["ESTIMATE_COUNT"]),
                total_adjusted_value=float(row["TOTAL_ADJUSTED_VALUE"]),
                average_multiplier=None if pd.isna(average) else float(average),
            )
        )
    return summaries
