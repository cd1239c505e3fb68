"""
Path weight: delivery likelihood along a chain of social hops.

Each hop i carries a weight h_i (the cumulative contact duration of that
edge). Treating hop i as available with probability 1 - exp(-h_i T),
the path weight combines hops with Lagrange-style coefficients:

    weight = Σ_i c_i (1 - exp(-h_i T)),   c_i = Π_{j≠i} h_j / (h_j - h_i)

which is the CDF of a hypoexponential sum evaluated at the TTL T.

The coefficients are undefined when two hops carry the same weight, and
lose precision to cancellation when two weights are close. If any two
sorted hop weights differ by no more than HOP_RTOL relative to the larger
one, the same CDF is evaluated as a phase-type distribution instead:

    weight = 1 - e_0 · expm(S T) · 1,   S = -diag(h) + superdiag(h[:-1])

This is the repeated-rate (Erlang) limit of the formula, so the result is
continuous as hops approach each other.
"""

from typing import Sequence

import numpy as np
from scipy.linalg import expm

from socialdtn.core.errors import PathWeightError


# Relative gap below which two hop weights count as repeated
HOP_RTOL = 1e-6


def hop_availability(hops: Sequence[float] | np.ndarray, ttl: float) -> np.ndarray:
    """Per-hop availability 1 - exp(-h T), computed without cancellation."""
    h = np.asarray(hops, dtype=np.float64)
    return -np.expm1(-h * ttl)


def lagrange_coefficients(hops: Sequence[float] | np.ndarray) -> np.ndarray:
    """
    c_i = Π_{j≠i} h_j / (h_j - h_i) for distinct hop weights.

    Raises ValueError if two hops are equal; path_weight never calls this
    with repeated hops.
    """
    h = np.asarray(hops, dtype=np.float64)
    n = h.size
    if n == 1:
        return np.ones(1)
    if np.unique(h).size != n:
        raise ValueError("Lagrange coefficients need distinct hop weights")

    # diff[i, j] = h_j - h_i
    diff = h[np.newaxis, :] - h[:, np.newaxis]
    np.fill_diagonal(diff, 1.0)
    ratio = h[np.newaxis, :] / diff
    np.fill_diagonal(ratio, 1.0)
    return ratio.prod(axis=1)


def has_repeated_hops(hops: Sequence[float] | np.ndarray, rtol: float = HOP_RTOL) -> bool:
    """True if two hop weights are equal within rtol of the larger one."""
    h = np.sort(np.asarray(hops, dtype=np.float64))
    if h.size < 2:
        return False
    return bool(np.any(np.diff(h) <= rtol * h[1:]))


def phase_type_cdf(hops: Sequence[float] | np.ndarray, ttl: float) -> float:
    """
    P(sum of exponential stages <= ttl), stage rates given by hops.

    Exact for any rates, repeated or not.
    """
    h = np.asarray(hops, dtype=np.float64)
    generator = np.diag(-h) + np.diag(h[:-1], k=1)
    survival = expm(generator * ttl)[0].sum()
    return 1.0 - float(survival)


def path_weight(hops: Sequence[float], ttl: float) -> float:
    """
    Scalar path weight for an ordered list of hop weights.

    Args:
        hops: Hop weights along the path (contact durations), each >= 0
        ttl: Message TTL constant T

    Returns:
        The path weight. An empty path weighs 0.

    Raises:
        ValueError: negative or non-finite hop weights
        PathWeightError: the combination overflowed to a non-finite value
    """
    h = np.asarray(hops, dtype=np.float64)
    if h.size == 0:
        return 0.0
    if not np.all(np.isfinite(h)) or np.any(h < 0):
        raise ValueError(f"Hop weights must be finite and non-negative: {list(hops)}")

    with np.errstate(over="ignore", invalid="ignore"):
        if has_repeated_hops(h):
            weight = phase_type_cdf(h, ttl)
        else:
            weight = float(np.dot(lagrange_coefficients(h), hop_availability(h, ttl)))

    if not np.isfinite(weight):
        raise PathWeightError(f"Path weight is not finite for hops {list(hops)}")
    return weight
