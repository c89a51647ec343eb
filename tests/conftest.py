from __future__ import annotations

from typing import Callable

import pytest


STANDARD_RANGES = [
    {"minCost": 0, "maxCost": 1700, "lowestMultiple": 2.8, "highestMultiple": 3.2},
    {"minCost": 1700.01, "maxCost": 6000, "lowestMultiple": 2.6, "highestMultiple": 3.0},
    {"minCost": 6000.01, "maxCost": None, "lowestMultiple": 2.3, "highestMultiple": 2.7},
]


@pytest.fixture
def estimate_record() -> Callable[..., dict]:
    """Factory for upstream-shaped job-estimate documents."""

    def _create(**overrides) -> dict:
        record = {
            "id": 101,
            "name": "Attic insulation - Smith",
            "status": "Sold",
            "branch": {"name": "Orange County"},
            "true_cost": 5000,
            "sub_services_retail_cost": 0,
            "final_price": 12500,
            "multiplierOverride": None,
            "discount_provided": 0,
            "retail_cost": 13000,
            "global_info": {},
            "user": {"name": "Dana Reyes"},
            "createdAt": "2024-03-01T10:00:00.000Z",
            "updatedAt": "2024-03-15T16:30:00.000Z",
        }
        record.update(overrides)
        return record

    return _create


@pytest.fixture
def snapshot() -> Callable[..., dict]:
    def _create(ranges=None) -> dict:
        return {"snapshotData": {"multiplierRanges": STANDARD_RANGES if ranges is None else ranges}}

    return _create
