"""Resolve a metric value from a raw insights bag by synonym keys."""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence


@dataclass(frozen=True)
class MetricPick:
    """Resolved metric value and the key it came from."""

    value: Optional[float | int]
    source: Optional[str]


def as_number(value: Any) -> Optional[float | int]:
    """Return the value if it is a finite number, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


def pick_metric(bag: Mapping[str, Any], keys: Sequence[str]) -> MetricPick:
    """Return the first key in ``keys`` present in ``bag`` as a finite number.

    The Graph API renames metrics between versions (``saved`` -> ``saves``,
    ``impressions`` -> ``views``), so callers pass every known name in order
    of preference. Nothing matching yields ``MetricPick(None, None)``.
    """
    for key in keys:
        value = as_number(bag.get(key))
        if value is not None:
            return MetricPick(value=value, source=key)
    return MetricPick(value=None, source=None)
