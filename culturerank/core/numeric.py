import math
import numpy as np
from numpy.typing import ArrayLike, NDArray


__all__ = [
    "ZERO_THRESHOLD",
    "MATRIX_REGULARIZATION",
    "clamp",
    "clamp01",
    "lerp",
    "round9",
    "safe_div",
    "finite_or",
    "determinant",
]

ZERO_THRESHOLD: float = 1e-10
MATRIX_REGULARIZATION: float = 1e-6


def finite_or(x: float, default: float = 0.0) -> float:
    x = float(x)
    return x if math.isfinite(x) else default


def clamp(x: float, lo: float, hi: float) -> float:
    """Clamp into [lo, hi]. Non-finite input collapses to lo; reversed bounds are swapped."""
    lo = finite_or(lo, 0.0)
    hi = finite_or(hi, lo)
    if lo > hi:
        lo, hi = hi, lo
    x = float(x)
    if not math.isfinite(x):
        return lo
    return max(lo, min(hi, x))


def clamp01(x: float) -> float:
    return clamp(x, 0.0, 1.0)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def round9(x: float) -> float:
    # half-up at the 9th decimal
    x = float(x)
    if not math.isfinite(x):
        return 0.0
    return math.floor(x * 1e9 + 0.5) / 1e9


def safe_div(a: float, b: float, fallback: float = 0.0) -> float:
    fallback = finite_or(fallback, 0.0)
    a, b = float(a), float(b)
    if not math.isfinite(a) or not math.isfinite(b) or b == 0.0:
        return fallback
    out = a / b
    return out if math.isfinite(out) else fallback


def determinant(
    matrix: ArrayLike, regularization: float = MATRIX_REGULARIZATION
) -> float:
    """Determinant via partially pivoted LU with `regularization` added to the diagonal.

    Returns 1.0 for the empty matrix and 0.0 once a pivot falls under
    ZERO_THRESHOLD (near-singular input).
    """
    lu: NDArray[np.float64] = np.array(matrix, dtype=np.float64, copy=True)
    n: int = lu.shape[0] if lu.ndim == 2 else 0
    if n == 0:
        return 1.0
    if n == 1:
        return float(lu[0, 0] + regularization)
    if n == 2:
        a = lu[0, 0] + regularization
        d = lu[1, 1] + regularization
        return float(a * d - lu[0, 1] * lu[1, 0])

    lu[np.diag_indices(n)] += regularization
    det: float = 1.0
    swaps: int = 0
    for i in range(n):
        # first row holding the largest magnitude wins ties
        pivot: int = i + int(np.argmax(np.abs(lu[i:, i])))
        if pivot != i:
            lu[[i, pivot]] = lu[[pivot, i]]
            swaps += 1
        if abs(lu[i, i]) < ZERO_THRESHOLD:
            return 0.0
        det *= float(lu[i, i])
        if i + 1 < n:
            factors = lu[i + 1 :, i] / lu[i, i]
            lu[i + 1 :, i + 1 :] -= np.outer(factors, lu[i, i + 1 :])
            lu[i + 1 :, i] = 0.0
    return det if swaps % 2 == 0 else -det
