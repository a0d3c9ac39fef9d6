"""
Background leveling and intensity renormalization.

Leveling removes a tilted background plane spanned by the two corner
diagonals of the grid,

    a = (m - 1, n - 1, z[m, n] - z[1, 1])
    b = (1 - m, n - 1, z[1, n] - z[m, 1])

with normal a × b, and is anchored at the darkest pixel so that pixel
maps to zero. Indices in the formulas are 1-based.
"""

import numpy as np


def level_background(image: np.ndarray) -> np.ndarray:
    """
    Subtract the corner-diagonal plane from an intensity grid.

    Args:
        image: Intensities, shape (m, n) with m, n >= 2

    Returns:
        Leveled copy (float64), same shape

    Raises:
        ValueError: If image is not 2D or smaller than 2x2
    """
    image = np.asarray(image, dtype=np.float64)
    if image.ndim != 2:
        raise ValueError(f"Image must be 2D array (H, W), got shape {image.shape}")
    m, n = image.shape
    if m < 2 or n < 2:
        raise ValueError(f"Leveling needs at least a 2x2 image, got {image.shape}")

    a1, a2, a3 = m - 1, n - 1, image[-1, -1] - image[0, 0]
    b1, b2, b3 = 1 - m, n - 1, image[0, -1] - image[-1, 0]

    nx = a2 * b3 - a3 * b2
    ny = a3 * b1 - a1 * b3
    nz = a1 * b2 - a2 * b1

    # darkest pixel, first in column-major order on ties
    i0, j0 = np.unravel_index(np.argmin(image.ravel(order='F')), image.shape, order='F')
    d0 = nx * (i0 + 1) + ny * (j0 + 1) + nz * image[i0, j0]

    nx, ny, d0 = nx / nz, ny / nz, d0 / nz

    rows = np.arange(1, m + 1)[:, np.newaxis]
    cols = np.arange(1, n + 1)[np.newaxis, :]
    return image + nx * rows + ny * cols - d0


def renormalize(image: np.ndarray) -> np.ndarray:
    """
    Map intensities affinely onto [0, 1].

    Raises:
        ValueError: If the image is constant
    """
    image = np.asarray(image, dtype=np.float64)
    lo, hi = image.min(), image.max()
    if hi == lo:
        raise ValueError(f"Cannot renormalize a constant image (value {lo})")
    return (image - lo) / (hi - lo)
