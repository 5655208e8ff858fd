"""Per-bin summary statistics that have no numpy one-liner."""

import numpy as np
from numba import njit


@njit(cache=True)
def _half_sample_mode_sorted(x: np.ndarray) -> float:
    lo = 0
    n = x.shape[0]

    # Repeatedly keep the densest half: the window of ceil(n/2) consecutive
    # sorted values with the smallest range, first window on ties.
    while n > 3:
        h = (n + 1) // 2
        best = lo
        best_width = x[lo + h - 1] - x[lo]
        for i in range(lo + 1, lo + n - h + 1):
            width = x[i + h - 1] - x[i]
            if width < best_width:
                best_width = width
                best = i
        lo = best
        n = h

    if n == 3:
        left = x[lo + 1] - x[lo]
        right = x[lo + 2] - x[lo + 1]
        if left < right:
            return (x[lo] + x[lo + 1]) / 2.0
        if right < left:
            return (x[lo + 1] + x[lo + 2]) / 2.0
        return x[lo + 1]
    if n == 2:
        return (x[lo] + x[lo + 1]) / 2.0
    return x[lo]


def half_sample_mode(values) -> float:
    """Estimate the mode of continuous data with the half-sample mode.

    Non-finite values are ignored. Returns NaN when no finite value is left.
    """
    x = np.asarray(values, dtype=np.float64)
    x = np.sort(x[np.isfinite(x)])
    if x.size == 0:
        return np.nan
    return float(_half_sample_mode_sorted(x))
