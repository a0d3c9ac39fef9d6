"""
Kernel Power K-Means: single refinement step.

With soft centroids μₖ = Σₙ wₙₖ ϕ(xₙ) / Nₖ the kernel trick gives

    dₙₖ = ‖ϕ(xₙ) - μₖ‖² = Kₙₙ + wₖᵀ K wₖ / Nₖ² - (2/Nₖ)(K wₖ)ₙ

Each cluster column only reads the kernel and its own weight column, so
the columns are updated independently (optionally on a thread pool).
"""

from concurrent.futures import Executor
from typing import Optional

import numpy as np

from .errors import NumericalDegeneracyError
from .power_mean import log_power_sum, power_mean_weights
from .workspace import ActiveView


def update_distance_column(
    view: ActiveView,
    kernel: np.ndarray,
    diag: np.ndarray,
    k: int
) -> None:
    """Recompute distance column k from weight column k."""
    volume = view.cluster_volume[0, k]
    column = view.distances[:, k]

    if volume == 0.0:
        # empty cluster: no centroid to be close to
        column.fill(np.inf)
        return

    w = view.weights[:, k]
    kw = kernel @ w
    tmp = np.dot(w, kw) / (volume * volume)

    np.add(diag, tmp, out=column)
    column += (-2.0 / volume) * kw
    # rounding can push coincident points slightly below zero
    np.maximum(column, 0.0, out=column)


def refine_step(
    view: ActiveView,
    kernel: np.ndarray,
    power: float,
    executor: Optional[Executor] = None
) -> None:
    """
    One Kernel Power K-Means iteration, in place on ``view``.

    Overwrites cluster_volume, distances, log_powers, log_power_sum and
    weights. A distance of exactly zero yields a zero weight.

    Args:
        view: Workspace slice holding the current weights
        kernel: Gram matrix (N, N)
        power: Exponent p < 0
        executor: Runs the per-cluster updates concurrently if given

    Raises:
        NumericalDegeneracyError: On NaN distances, non-finite weights or a
            point whose weights all vanished
    """
    np.sum(view.weights, axis=0, keepdims=True, out=view.cluster_volume)

    diag = np.diagonal(kernel)
    columns = range(view.n_clusters)
    if executor is None:
        for k in columns:
            update_distance_column(view, kernel, diag, k)
    else:
        # consuming the iterator waits for every column
        list(executor.map(lambda k: update_distance_column(view, kernel, diag, k), columns))

    if np.isnan(view.distances).any():
        raise NumericalDegeneracyError(
            f"NaN kernel distances at p={power:.4g} "
            f"(cluster volumes: {view.cluster_volume.ravel()})"
        )

    log_power_sum(view.distances, power, view.log_powers, view.log_power_sum)
    power_mean_weights(
        view.distances, view.log_power_sum, power, view.weights, zero_degenerate=True
    )

    if not np.isfinite(view.weights).all():
        raise NumericalDegeneracyError(
            f"Non-finite weights at p={power:.4g}"
        )

    # a row with only positive distances must keep some weight
    positive = (view.distances > 0.0).all(axis=1) & np.isfinite(view.distances).any(axis=1)
    lost = positive & ~(view.weights > 0.0).any(axis=1)
    if lost.any():
        raise NumericalDegeneracyError(
            f"{int(lost.sum())} points lost all their weight at p={power:.4g}"
        )
