from __future__ import annotations

from typing import Optional

from .models import CostSplit, to_number


def split_costs(true_cost: object | None, sub_services_retail_cost: object | None) -> CostSplit:
    """Separate direct (base) cost from subcontracted cost.

    Missing values count as zero.  The base cost is not clamped, so malformed
    data can produce a negative base cost that no bracket will match.
    """

    sub_cost = to_number(sub_services_retail_cost) or 0.0
    total = to_number(true_cost) or 0.0
    return CostSplit(true_cost=total, sub_cost=sub_cost, base_cost=total - sub_cost)


def after_sub_multiplier(split: CostSplit) -> Optional[float]:
    """Ratio of cost including subcontractor retail to direct cost, for display."""

    if split.true_cost <= 0:
        return None
    return round((split.true_cost + split.sub_cost) / split.true_cost, 2)
