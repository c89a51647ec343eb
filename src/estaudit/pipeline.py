"""Composition of the per-estimate stages and the batch audit pass."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .aggregate import group_by_branch, summarize_branches
from .config import DEFAULT_CONFIG, Config
from .costs import after_sub_multiplier
from .models import BranchSummary, RawEstimate, ResolvedEstimate
from .multiplier_logic import resolve_estimate_multiplier
from .reconcile import reconcile
from .tax import adjust_for_tax

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditResult:
    """Report-sink payload: estimates grouped by branch plus the per-branch summaries."""

    resolved: List[ResolvedEstimate] = field(default_factory=list)
    by_branch: Dict[str, List[ResolvedEstimate]] = field(default_factory=dict)
    summaries: List[BranchSummary] = field(default_factory=list)
    skipped: int = 0


def resolve_estimate(estimate: object, config: Config = DEFAULT_CONFIG) -> ResolvedEstimate:
    """Resolve, tax-adjust and reconcile a single estimate (raw mapping or :class:`RawEstimate`)."""

    raw = RawEstimate.from_record(estimate)
    split, resolution = resolve_estimate_multiplier(raw, config)
    tax = adjust_for_tax(raw.final_price, raw.branch_name, raw.final_price_after_taxes, config)
    reconciliation = reconcile(
        resolution.multiplier,
        raw.true_cost,
        raw.discount_provided,
        raw.final_price,
        config,
    )
    return ResolvedEstimate(
        estimate=raw,
        split=split,
        resolution=resolution,
        tax=tax,
        reconciliation=reconciliation,
        after_sub_multiplier=after_sub_multiplier(split),
    )


def resolve_all(records: Iterable[object], config: Config = DEFAULT_CONFIG) -> List[ResolvedEstimate]:
    return [resolve_estimate(record, config) for record in records]


def filter_sold(estimates: Iterable[RawEstimate]) -> List[RawEstimate]:
    """Keep sold estimates; upstream reports the status as both ``"sold"`` and ``"Sold"``."""

    return [estimate for estimate in estimates if estimate.is_sold]


def filter_branch(estimates: Iterable[RawEstimate], branch_name: Optional[str]) -> List[RawEstimate]:
    if not branch_name:
        return list(estimates)
    wanted = branch_name.strip().lower()
    return [
        estimate
        for estimate in estimates
        if (estimate.branch_name or "").strip().lower() == wanted
    ]


def audit_estimates(records: Iterable[object], config: Config = DEFAULT_CONFIG) -> AuditResult:
    """Run the full pass over ``records`` and build the report-sink payload."""

    estimates = [RawEstimate.from_record(record) for record in records]
    selected = estimates
    if config.sold_only:
        selected = filter_sold(selected)
    if config.branch_filter:
        selected = filter_branch(selected, config.branch_filter)
    skipped = len(estimates) - len(selected)
    if skipped:
        logger.debug("Skipped %s estimate(s) by status/branch filters", skipped)

    resolved = resolve_all(selected, config)
    sources = Counter(item.multiplier_source.value for item in resolved)
    if sources:
        logger.debug("Multiplier sources: %s", dict(sources))

    return AuditResult(
        resolved=resolved,
        by_branch=group_by_branch(resolved),
        summaries=summarize_branches(resolved),
        skipped=skipped,
    )
