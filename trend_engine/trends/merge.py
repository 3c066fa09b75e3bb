"""
Conflict policy for partial metric maps of the same topic.

Numeric values keep the maximum (a real number beats NaN); anything else
is overwritten by the newer map. For purely numeric maps the merge is
commutative and idempotent.
"""

import math
from typing import Any, Dict, Mapping


def _is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _max_wins(current: float, incoming: float) -> float:
    if isinstance(current, float) and math.isnan(current):
        return incoming
    if isinstance(incoming, float) and math.isnan(incoming):
        return current
    return incoming if incoming > current else current


def merge_metric_maps(old: Mapping[str, Any], new: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a new map; neither input is modified."""
    merged: Dict[str, Any] = dict(old)
    for key, value in new.items():
        if key in merged and _is_numeric(merged[key]) and _is_numeric(value):
            merged[key] = _max_wins(merged[key], value)
        else:
            merged[key] = value
    return merged
