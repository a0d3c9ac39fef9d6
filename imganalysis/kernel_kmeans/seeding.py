"""
Kernelized k-means++ (farthest-point) initialization.

For all points x the distance D(x) is the kernel distance to the nearest
centroid found so far,

    d(n, m) = Kₙₙ + Kₘₘ - 2·Kₙₘ

and the next centroid is argmax D(x). The first centroid is random; once
the others are placed it is re-chosen with the same rule so the result
depends less on the random pick.
"""

import logging

import numpy as np

from .errors import InvalidConfigurationError
from .power_mean import log_power_sum, power_mean_weights
from .workspace import ActiveView

logger = logging.getLogger(__name__)

EPS = np.finfo(np.float64).eps


def kernel_distance_column(
    kernel: np.ndarray,
    diag: np.ndarray,
    m: int,
    out: np.ndarray
) -> np.ndarray:
    """Distances of every point to point ``m``, clamped below at eps."""
    # kernel is symmetric: row m is column m, and contiguous
    np.subtract(diag + diag[m], 2.0 * kernel[m], out=out)
    np.maximum(out, EPS, out=out)
    return out


def farthest_point(distances: np.ndarray, chosen: np.ndarray) -> int:
    """
    Point maximizing its minimum distance over the given centroid columns.

    Points listed in ``chosen`` are never selected again.
    """
    nearest = distances.min(axis=1)
    nearest[chosen] = -np.inf
    return int(np.argmax(nearest))


def kmeanspp_init(
    view: ActiveView,
    kernel: np.ndarray,
    power: float,
    rng: np.random.RandomState
) -> np.ndarray:
    """
    Choose K centroids and write the initial soft weights.

    Fills view.distances, view.log_powers, view.log_power_sum and view.weights.

    Args:
        view: Workspace slice for the active K
        kernel: Gram matrix (N, N)
        power: Exponent p < 0
        rng: Random state for the first centroid

    Returns:
        centroids: Distinct point indices, shape (K,)

    Raises:
        InvalidConfigurationError: If K exceeds the number of points
    """
    n_points, n_clusters = view.n_points, view.n_clusters
    if n_clusters > n_points:
        raise InvalidConfigurationError(
            f"n_clusters ({n_clusters}) exceeds the number of points ({n_points})"
        )

    diag = np.diagonal(kernel)
    distances = view.distances
    centroids = np.empty(n_clusters, dtype=np.intp)

    centroids[0] = rng.randint(n_points)
    kernel_distance_column(kernel, diag, centroids[0], distances[:, 0])

    for k in range(1, n_clusters):
        centroids[k] = farthest_point(distances[:, :k], centroids[:k])
        kernel_distance_column(kernel, diag, centroids[k], distances[:, k])

    if n_clusters > 1:
        first = farthest_point(distances[:, 1:], centroids[1:])
        logger.debug(f"Re-chose first centroid: {centroids[0]} -> {first}")
        centroids[0] = first
        kernel_distance_column(kernel, diag, first, distances[:, 0])

    log_power_sum(distances, power, view.log_powers, view.log_power_sum)
    power_mean_weights(distances, view.log_power_sum, power, view.weights)
    return centroids
