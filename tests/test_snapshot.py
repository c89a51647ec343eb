import json
import math

import pytest

from estaudit.models import MultiplierRange
from estaudit.snapshot import parse_multiplier_ranges, parse_range


def test_ranges_keep_source_order_and_defaults():
    snapshot = {
        "snapshotData": {
            "multiplierRanges": [
                {"minCost": 6000, "maxCost": None, "lowestMultiple": 2.3},
                {"minCost": None, "maxCost": 1700, "lowestMultiple": "2.8"},
            ]
        }
    }
    ranges = parse_multiplier_ranges(snapshot)
    assert ranges == [
        MultiplierRange(min_cost=6000.0, max_cost=math.inf, lowest_multiple=2.3),
        MultiplierRange(min_cost=0.0, max_cost=1700.0, lowest_multiple=2.8),
    ]


def test_zero_max_cost_means_unbounded():
    assert parse_range({"minCost": 100, "maxCost": 0, "lowestMultiple": 2.5}).max_cost == math.inf


def test_snake_case_entries_are_accepted():
    parsed = parse_range({"min_cost": "1,700.00", "max_cost": "6000", "lowest_multiple": "2.5"})
    assert parsed == MultiplierRange(min_cost=1700.0, max_cost=6000.0, lowest_multiple=2.5)


def test_json_encoded_snapshot_data():
    data = {"multiplierRanges": [{"minCost": 0, "maxCost": 5000, "lowestMultiple": 2.7}]}
    ranges = parse_multiplier_ranges({"snapshotData": json.dumps(data)})
    assert ranges == [MultiplierRange(min_cost=0.0, max_cost=5000.0, lowest_multiple=2.7)]


def test_non_mapping_entries_keep_their_position():
    ranges = parse_multiplier_ranges(
        {"snapshotData": {"multiplierRanges": ["bogus", {"minCost": 0, "lowestMultiple": 2.6}]}}
    )
    assert len(ranges) == 2
    assert not ranges[0].usable
    assert ranges[1].lowest_multiple == 2.6


def test_empty_range_list_is_present():
    assert parse_multiplier_ranges({"snapshotData": {"multiplierRanges": []}}) == []


@pytest.mark.parametrize(
    "snapshot",
    [
        None,
        "not a snapshot",
        {},
        {"snapshotData": None},
        {"snapshotData": "{broken json"},
        {"snapshotData": {"otherKey": 1}},
        {"snapshotData": {"multiplierRanges": {"minCost": 0}}},
        {"snapshotData": {"multiplierRanges": "0-1700"}},
    ],
)
def test_missing_or_malformed_snapshot_is_none(snapshot):
    assert parse_multiplier_ranges(snapshot) is None
