"""
Gram matrix of the anisotropic exponential (Laplacian) kernel.

    k(xᵢ, xⱼ) = exp(-γH |Δh| - γW |Δw| - γG |Δg|)

The exponent is a weighted city-block distance, so only the condensed
upper triangle is computed and then mirrored. The matrix is therefore
exactly symmetric and has a unit diagonal.
"""

import logging
from typing import Optional, Sequence

import numpy as np
from scipy.spatial.distance import pdist, squareform

from .config import ClusteringConfig, kernel_needs_rebuild

logger = logging.getLogger(__name__)


def compute_kernel(
    features: np.ndarray,
    scales: Sequence[float],
    out: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Compute the kernel matrix over encoded features.

    Args:
        features: Feature matrix, shape (3, N)
        scales: (γH, γW, γG), non-negative
        out: Preallocated (N, N) float64 buffer, overwritten in place

    Returns:
        kernel: Symmetric (N, N) matrix (``out`` if given)

    Raises:
        ValueError: If ``out`` has the wrong shape
    """
    n_points = features.shape[1]
    if out is None:
        out = np.empty((n_points, n_points), dtype=np.float64)
    elif out.shape != (n_points, n_points):
        raise ValueError(
            f"Kernel buffer shape {out.shape} doesn't match {n_points} points"
        )

    weighted = pdist(
        features.T, metric='minkowski', p=1, w=np.asarray(scales, dtype=np.float64)
    )
    out[...] = squareform(weighted, checks=False)
    np.negative(out, out=out)
    np.exp(out, out=out)

    logger.debug(f"Kernel rebuilt for {n_points} points with scales {tuple(scales)}")
    return out


def rebuild_kernel_if_needed(
    kernel: np.ndarray,
    features: np.ndarray,
    old: ClusteringConfig,
    new: ClusteringConfig
) -> bool:
    """
    Recompute ``kernel`` in place when the kernel scales changed.

    Returns:
        True if the kernel was recomputed
    """
    if not kernel_needs_rebuild(old, new):
        return False
    compute_kernel(features, new.kernel_scales, out=kernel)
    return True
