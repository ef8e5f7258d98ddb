"""Severity classification and percentile helpers."""

import math
from typing import Iterable

from .models import LagSeverity

WARNING_MULTIPLIER = 1.5


def classify_lag(value: float, threshold: float) -> LagSeverity:
    """Classify a latency against its threshold.

    <= threshold is normal, up to 1.5x threshold is a warning, beyond that critical.
    """
    if value <= threshold:
        return LagSeverity.NORMAL
    if value <= threshold * WARNING_MULTIPLIER:
        return LagSeverity.WARNING
    return LagSeverity.CRITICAL


def calculate_percentile(values: Iterable[float], percentile: float) -> float:
    """Nearest-rank percentile. Returns an observed value, never interpolates.

    Args:
        values: Latency samples (any order)
        percentile: 0-100

    Returns:
        The sample at rank ceil(p/100 * n) - 1 of the sorted values, 0.0 when empty
    """
    ordered = sorted(values)
    if not ordered:
        return 0.0
    index = math.ceil((percentile / 100) * len(ordered)) - 1
    index = min(max(0, index), len(ordered) - 1)
    return ordered[index]


_SEVERITY_RANK = {
    LagSeverity.NORMAL: 0,
    LagSeverity.WARNING: 1,
    LagSeverity.CRITICAL: 2,
}


def worst_severity(*severities: LagSeverity) -> LagSeverity:
    if not severities:
        return LagSeverity.NORMAL
    return max(severities, key=_SEVERITY_RANK.__getitem__)
