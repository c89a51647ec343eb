from __future__ import annotations

import pytest

from estaudit.config import Config
from estaudit.costs import split_costs
from estaudit.models import MultiplierRange, MultiplierSource, RawEstimate
from estaudit.multiplier_logic import (
    OVERRIDE,
    SUBCONTRACTED_BRACKET,
    build_rules,
    resolve_estimate_multiplier,
    resolve_multiplier,
    standard_bracket,
)


RANGES = [
    MultiplierRange(min_cost=0, max_cost=1700, lowest_multiple=2.8),
    MultiplierRange(min_cost=1700.01, max_cost=6000, lowest_multiple=2.6),
    MultiplierRange(min_cost=6000.01, lowest_multiple=2.3),
]


def _resolve(record: dict, config: Config = Config()):
    return resolve_estimate_multiplier(RawEstimate.from_record(record), config)


def test_standard_bracket_thresholds_are_exclusive():
    brackets = Config().standard_brackets
    assert standard_bracket(6000.01, brackets) == 2.25
    assert standard_bracket(6000, brackets) == 2.5
    assert standard_bracket(1700, brackets) == 2.75
    assert standard_bracket(0, brackets) is None
    assert standard_bracket(-50, brackets) is None


def test_no_snapshot_uses_standard_bracket(estimate_record):
    split, resolution = _resolve(estimate_record(true_cost=5000, sub_services_retail_cost=0))
    assert split.base_cost == 5000
    assert resolution.multiplier == 2.5
    assert resolution.source is MultiplierSource.STANDARD_BRACKET


def test_subcontracted_boundary_falls_to_middle_bracket(estimate_record):
    split, resolution = _resolve(estimate_record(true_cost=8000, sub_services_retail_cost=2000))
    assert split.base_cost == 6000
    assert split.has_sub_cost
    assert resolution.multiplier == 2.5
    assert resolution.source is MultiplierSource.SUBCONTRACTED_STANDARD_BRACKET


def test_subcontracted_ignores_override_and_snapshot(estimate_record, snapshot):
    record = estimate_record(
        true_cost=9000,
        sub_services_retail_cost=1000,
        multiplierOverride=3.1,
        estimateSnapshot=snapshot(),
    )
    _, resolution = _resolve(record)
    assert resolution.source is MultiplierSource.SUBCONTRACTED_STANDARD_BRACKET
    assert resolution.multiplier == 2.25
    assert resolution.rule == SUBCONTRACTED_BRACKET


def test_subcontracted_non_positive_base_cost_is_unresolved_but_tagged(estimate_record):
    _, resolution = _resolve(estimate_record(true_cost=1000, sub_services_retail_cost=1500))
    assert resolution.multiplier is None
    assert resolution.source is MultiplierSource.SUBCONTRACTED_STANDARD_BRACKET


def test_override_wins_over_snapshot(estimate_record, snapshot):
    record = estimate_record(multiplierOverride=3.05, estimateSnapshot=snapshot())
    _, resolution = _resolve(record)
    assert resolution.source is MultiplierSource.OVERRIDE
    assert resolution.multiplier == 3.05


def test_override_given_as_string(estimate_record):
    _, resolution = _resolve(estimate_record(multiplierOverride="2.9"))
    assert resolution.source is MultiplierSource.OVERRIDE
    assert resolution.multiplier == 2.9


@pytest.mark.parametrize("override", [0, None, "", "abc"])
def test_falsy_override_is_ignored(estimate_record, override):
    _, resolution = _resolve(estimate_record(multiplierOverride=override))
    assert resolution.source is MultiplierSource.STANDARD_BRACKET


def test_snapshot_range_first_match_in_source_order():
    overlapping = [
        MultiplierRange(min_cost=0, max_cost=10000, lowest_multiple=2.9),
        MultiplierRange(min_cost=4000, max_cost=6000, lowest_multiple=2.4),
    ]
    resolution = resolve_multiplier(split_costs(5000, 0), ranges=overlapping)
    assert resolution.source is MultiplierSource.SNAPSHOT_RANGE
    assert resolution.multiplier == 2.9
    assert resolution.matched_range == overlapping[0]


def test_snapshot_range_bounds_are_inclusive():
    resolution = resolve_multiplier(split_costs(6000, 0), ranges=RANGES)
    assert resolution.multiplier == 2.6
    assert resolution.matched_range.max_cost == 6000


def test_snapshot_range_uses_base_cost_not_true_cost():
    # A negative sub cost skips the subcontracted rule but still shifts the base cost.
    split = split_costs(1500, -1000)
    assert not split.has_sub_cost
    resolution = resolve_multiplier(split, ranges=RANGES)
    assert split.base_cost == 2500
    assert resolution.multiplier == 2.6


def test_global_info_index_when_no_range_matches():
    split = split_costs(1700.005, 0)
    resolution = resolve_multiplier(split, ranges=RANGES, global_info={"2": 2})
    assert resolution.source is MultiplierSource.GLOBAL_INFO_INDEX
    assert resolution.multiplier == 2.3


def test_global_info_index_accepts_digit_string():
    resolution = resolve_multiplier(split_costs(1700.005, 0), ranges=RANGES, global_info={"2": "1"})
    assert resolution.source is MultiplierSource.GLOBAL_INFO_INDEX
    assert resolution.multiplier == 2.6


@pytest.mark.parametrize("index", [3, -1, "x", None, True])
def test_invalid_global_info_index_falls_back_to_first_range(index):
    resolution = resolve_multiplier(split_costs(1700.005, 0), ranges=RANGES, global_info={"2": index})
    assert resolution.source is MultiplierSource.FIRST_RANGE_FALLBACK
    assert resolution.multiplier == 2.8


def test_empty_range_list_is_unresolved_not_standard_bracket():
    resolution = resolve_multiplier(split_costs(5000, 0), ranges=[])
    assert resolution.source is MultiplierSource.UNRESOLVED
    assert resolution.multiplier is None


def test_first_range_without_multiple_is_unresolved():
    ranges = [MultiplierRange(min_cost=0, max_cost=10)]
    resolution = resolve_multiplier(split_costs(5000, 0), ranges=ranges)
    assert resolution.source is MultiplierSource.UNRESOLVED


def test_zero_cost_without_snapshot_is_unresolved(estimate_record):
    _, resolution = _resolve(estimate_record(true_cost=None, sub_services_retail_cost=None))
    assert resolution.multiplier is None
    assert resolution.source is MultiplierSource.UNRESOLVED


def test_snapshot_given_as_json_string_resolves_like_mapping(estimate_record, snapshot):
    import json

    as_mapping = estimate_record(estimateSnapshot=snapshot())
    as_string = estimate_record(estimateSnapshot={"snapshotData": json.dumps(snapshot()["snapshotData"])})
    assert _resolve(as_mapping) == _resolve(as_string)


def test_resolution_is_idempotent(estimate_record, snapshot):
    record = estimate_record(true_cost=7000, estimateSnapshot=snapshot(), global_info={"2": 0})
    assert _resolve(record) == _resolve(record)


def test_rule_order_defaults_to_subcontracted_first():
    names = [name for name, _ in build_rules(Config())]
    assert names[0] == SUBCONTRACTED_BRACKET
    assert names[1] == OVERRIDE
    assert names[-1] == "UNRESOLVED"
