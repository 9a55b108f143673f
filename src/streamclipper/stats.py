from __future__ import annotations

from typing import Sequence

import numpy as np


def median(values: Sequence[float]) -> float:
    """Median of values (mean of the two middle values for even counts); 0.0 when empty."""
    if len(values) == 0:
        return 0.0
    return float(np.median(np.asarray(values, dtype=np.float64)))


def percentile_value(values: Sequence[float], percentile: float) -> float:
    """Nearest-rank-below percentile: index int(p/100 * (n-1)) into the sorted values."""
    if len(values) == 0:
        return 0.0
    x = np.sort(np.asarray(values, dtype=np.float64))
    idx = int((float(percentile) / 100.0) * (len(x) - 1))
    return float(x[min(max(idx, 0), len(x) - 1)])


def std_dev(values: Sequence[float], center: float) -> float:
    """Population standard deviation around an arbitrary center (not necessarily the mean)."""
    if len(values) == 0:
        return 0.0
    x = np.asarray(values, dtype=np.float64)
    return float(np.sqrt(np.mean((x - float(center)) ** 2)))


def clamp(value: float, lo: float, hi: float) -> float:
    return float(min(max(value, lo), hi))
