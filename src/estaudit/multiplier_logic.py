"""
Multiplier resolution.

The upstream system records the sale price of an estimate but not the
multiplier that produced it.  The multiplier is reconstructed by an ordered
chain of rules; the first rule that yields a resolution wins and tags it with
its :class:`MultiplierSource`:

 - SUBCONTRACTED_BRACKET (estimates with subcontracted cost; ignores
   overrides and snapshots)
 - OVERRIDE (explicit ``multiplierOverride``)
 - SNAPSHOT_RANGE (first snapshot range containing the base cost)
 - GLOBAL_INFO_INDEX (range selected by ``global_info["2"]``)
 - FIRST_RANGE_FALLBACK (first snapshot range)
 - STANDARD_BRACKET (no snapshot at all)
 - UNRESOLVED
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, Config
from .costs import split_costs
from .models import CostSplit, MultiplierRange, MultiplierResolution, MultiplierSource, RawEstimate
from .snapshot import parse_multiplier_ranges

logger = logging.getLogger(__name__)

SUBCONTRACTED_BRACKET = "SUBCONTRACTED_BRACKET"
OVERRIDE = "OVERRIDE"
SNAPSHOT_RANGE = "SNAPSHOT_RANGE"
GLOBAL_INFO_INDEX = "GLOBAL_INFO_INDEX"
FIRST_RANGE_FALLBACK = "FIRST_RANGE_FALLBACK"
STANDARD_BRACKET = "STANDARD_BRACKET"
UNRESOLVED = "UNRESOLVED"


@dataclass(frozen=True)
class ResolutionContext:
    """Everything a rule may consult; built once per estimate."""

    split: CostSplit
    override: Optional[float] = None
    ranges: Optional[Sequence[MultiplierRange]] = None
    global_info: Mapping[str, Any] = field(default_factory=dict)
    config: Config = DEFAULT_CONFIG


RuleHandler = Callable[[ResolutionContext], Optional[MultiplierResolution]]
Rule = Tuple[str, RuleHandler]


def standard_bracket(cost: float, brackets: Sequence[Tuple[float, float]]) -> Optional[float]:
    """Return the multiplier of the first bracket whose (exclusive) threshold ``cost`` exceeds."""

    for threshold, multiplier in brackets:
        if cost > threshold:
            return multiplier
    return None


def _range_index(value: object) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _subcontracted_bracket(ctx: ResolutionContext) -> Optional[MultiplierResolution]:
    """Standard bracket on base cost for estimates with subcontracted cost.

    A base cost of zero or less matches no bracket; the resolution still
    carries the SubcontractedStandardBracket source, with ``multiplier=None``.
    """

    if not ctx.split.has_sub_cost:
        return None
    multiplier = standard_bracket(ctx.split.base_cost, ctx.config.standard_brackets)
    return MultiplierResolution(
        multiplier=multiplier,
        source=MultiplierSource.SUBCONTRACTED_STANDARD_BRACKET,
        rule=SUBCONTRACTED_BRACKET,
    )


def _override(ctx: ResolutionContext) -> Optional[MultiplierResolution]:
    if not ctx.override:
        return None
    return MultiplierResolution(
        multiplier=float(ctx.override),
        source=MultiplierSource.OVERRIDE,
        rule=OVERRIDE,
    )


def _snapshot_range(ctx: ResolutionContext) -> Optional[MultiplierResolution]:
    if ctx.ranges is None:
        return None
    base_cost = ctx.split.base_cost
    for candidate in ctx.ranges:
        if candidate.usable and candidate.contains(base_cost):
            return MultiplierResolution(
                multiplier=candidate.lowest_multiple,
                source=MultiplierSource.SNAPSHOT_RANGE,
                rule=SNAPSHOT_RANGE,
                matched_range=candidate,
            )
    return None


def _global_info_index(ctx: ResolutionContext) -> Optional[MultiplierResolution]:
    if not ctx.ranges:
        return None
    key = ctx.config.global_info_range_key
    raw_index = ctx.global_info.get(key)
    if raw_index is None and key.isdigit():
        raw_index = ctx.global_info.get(int(key))
    index = _range_index(raw_index)
    if index is None or not 0 <= index < len(ctx.ranges):
        return None
    selected = ctx.ranges[index]
    if not selected.usable:
        return None
    return MultiplierResolution(
        multiplier=selected.lowest_multiple,
        source=MultiplierSource.GLOBAL_INFO_INDEX,
        rule=GLOBAL_INFO_INDEX,
        matched_range=selected,
    )


def _first_range_fallback(ctx: ResolutionContext) -> Optional[MultiplierResolution]:
    if not ctx.ranges or not ctx.ranges[0].usable:
        return None
    first = ctx.ranges[0]
    return MultiplierResolution(
        multiplier=first.lowest_multiple,
        source=MultiplierSource.FIRST_RANGE_FALLBACK,
        rule=FIRST_RANGE_FALLBACK,
        matched_range=first,
    )


def _standard_bracket(ctx: ResolutionContext) -> Optional[MultiplierResolution]:
    if ctx.ranges is not None:
        return None
    if ctx.config.fallback_cost_basis == "true":
        cost = ctx.split.true_cost
    else:
        cost = ctx.split.base_cost
    multiplier = standard_bracket(cost, ctx.config.standard_brackets)
    if multiplier is None:
        return None
    return MultiplierResolution(
        multiplier=multiplier,
        source=MultiplierSource.STANDARD_BRACKET,
        rule=STANDARD_BRACKET,
    )


def _unresolved(ctx: ResolutionContext) -> MultiplierResolution:
    return MultiplierResolution(multiplier=None, source=MultiplierSource.UNRESOLVED, rule=UNRESOLVED)


def build_rules(config: Config = DEFAULT_CONFIG) -> List[Rule]:
    """Return the precedence chain for ``config`` in evaluation order."""

    rules: List[Rule] = [
        (OVERRIDE, _override),
        (SNAPSHOT_RANGE, _snapshot_range),
        (GLOBAL_INFO_INDEX, _global_info_index),
        (FIRST_RANGE_FALLBACK, _first_range_fallback),
        (STANDARD_BRACKET, _standard_bracket),
        (UNRESOLVED, _unresolved),
    ]
    if config.subcontracted_rule_enabled:
        position = 1 if config.subcontract_honors_override else 0
        rules.insert(position, (SUBCONTRACTED_BRACKET, _subcontracted_bracket))
    return rules


def resolve_multiplier(
    split: CostSplit,
    override: Optional[float] = None,
    ranges: Optional[Sequence[MultiplierRange]] = None,
    global_info: Optional[Mapping[str, Any]] = None,
    config: Config = DEFAULT_CONFIG,
) -> MultiplierResolution:
    """Run the precedence chain and return the first resolution produced."""

    ctx = ResolutionContext(
        split=split,
        override=override,
        ranges=ranges,
        global_info=global_info or {},
        config=config,
    )
    for name, handler in build_rules(config):
        resolution = handler(ctx)
        if resolution is not None:
            logger.debug("rule %s -> %s (%s)", name, resolution.multiplier, resolution.source.value)
            return resolution
    return _unresolved(ctx)


def resolve_estimate_multiplier(
    estimate: RawEstimate,
    config: Config = DEFAULT_CONFIG,
) -> tuple[CostSplit, MultiplierResolution]:
    split = split_costs(estimate.true_cost, estimate.sub_services_retail_cost)
    ranges = parse_multiplier_ranges(estimate.snapshot)
    resolution = resolve_multiplier(
        split,
        override=estimate.multiplier_override,
        ranges=ranges,
        global_info=estimate.global_info,
        config=config,
    )
    return split, resolution
