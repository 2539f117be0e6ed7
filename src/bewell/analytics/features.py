"""Window statistics shared by the classifiers.

Everything here is pure computation over short in-memory windows:
  - mean / population standard deviation of a window
  - peak rate (fraction of samples above mean + margin)
  - stillness (every sample within a tolerance band)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass
class WindowStats:
    """Summary statistics of one window."""

    count: int
    mean: float
    std: float  # population std (ddof=0)
    minimum: float
    maximum: float


def window_stats(values: Sequence[float]) -> WindowStats:
    """Mean, population std, min and max of a window.

    An empty window yields all-zero stats with ``count == 0``.
    """
    arr = np.asarray(values, dtype=np.float64)
    if len(arr) == 0:
        return WindowStats(count=0, mean=0.0, std=0.0, minimum=0.0, maximum=0.0)
    return WindowStats(
        count=len(arr),
        mean=float(np.mean(arr)),
        std=float(np.std(arr, ddof=0)),
        minimum=float(np.min(arr)),
        maximum=float(np.max(arr)),
    )


def tail(values: Sequence[float], n: int) -> list[float]:
    """The newest *n* values of a window, oldest first."""
    if n <= 0:
        return []
    return list(values)[-n:]


def peak_rate(values: Sequence[float], margin: float) -> float:
    """Fraction of samples strictly above ``mean + margin``.

    Returns 0.0 for an empty window.
    """
    arr = np.asarray(values, dtype=np.float64)
    if len(arr) == 0:
        return 0.0
    threshold = float(np.mean(arr)) + margin
    return float(np.sum(arr > threshold)) / len(arr)


def is_still(values: Sequence[float], center: float, tolerance: float) -> bool:
    """True when the window is non-empty and every |v - center| < tolerance."""
    arr = np.asarray(values, dtype=np.float64)
    if len(arr) == 0:
        return False
    return bool(np.all(np.abs(arr - center) < tolerance))
