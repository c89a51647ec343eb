"""Extraction of the multiplier-range table embedded in an estimate snapshot."""

from __future__ import annotations

import json
import logging
import math
from typing import List, Mapping, Optional

from .models import MultiplierRange, to_number

logger = logging.getLogger(__name__)


def _first_present(entry: Mapping, *keys: str) -> object | None:
    for key in keys:
        if entry.get(key) is not None:
            return entry.get(key)
    return None


def _decode_snapshot_data(data: object) -> object:
    # Older snapshots store snapshotData as a JSON-encoded string.
    if isinstance(data, (str, bytes, bytearray)):
        try:
            return json.loads(data)
        except ValueError:
            logger.debug("Snapshot data is not valid JSON; ignoring snapshot")
            return None
    return data


def parse_range(entry: object) -> MultiplierRange:
    """Convert one raw range entry; malformed entries yield a range with no usable multiple."""

    if not isinstance(entry, Mapping):
        return MultiplierRange()
    min_cost = to_number(_first_present(entry, "minCost", "min_cost")) or 0.0
    max_cost = to_number(_first_present(entry, "maxCost", "max_cost")) or math.inf
    return MultiplierRange(
        min_cost=min_cost,
        max_cost=max_cost,
        lowest_multiple=to_number(_first_present(entry, "lowestMultiple", "lowest_multiple")),
        highest_multiple=to_number(_first_present(entry, "highestMultiple", "highest_multiple")),
    )


def parse_multiplier_ranges(snapshot: object) -> Optional[List[MultiplierRange]]:
    """
    Return the snapshot's multiplier ranges in source order.

    Parameters
    ----------
    snapshot:
        The raw ``estimateSnapshot`` structure of an estimate.

    Returns
    -------
    list or None
        ``None`` when the snapshot, its ``snapshotData`` or its
        ``multiplierRanges`` are absent or malformed.  An empty list is a
        present snapshot that carries no rules.  Entries keep their source
        position so ``global_info`` indices stay aligned.
    """

    if not isinstance(snapshot, Mapping):
        return None
    data = _decode_snapshot_data(snapshot.get("snapshotData"))
    if not isinstance(data, Mapping):
        return None
    ranges = data.get("multiplierRanges")
    if ranges is None:
        return None
    if not isinstance(ranges, (list, tuple)):
        logger.debug("multiplierRanges is %s, expected a list; ignoring snapshot", type(ranges).__name__)
        return None
    return [parse_range(entry) for entry in ranges]
