"""
Feature encoding of a grayscale grid for kernel clustering.

Each pixel (i, j) of an m×n grid becomes the column [i/m, j/n, value]
(1-based indices), stored in column-major pixel order so that pixel
(i, j) maps to column i + (j - 1)·m.
"""

import numpy as np
from sklearn.utils import check_array


def encode_features(image: np.ndarray) -> np.ndarray:
    """
    Encode a 2D intensity grid into a (3, m*n) feature matrix.

    Args:
        image: Grayscale intensities, shape (m, n)

    Returns:
        features: Rows are normalized row index, normalized column index
                  and raw value. Spatial coordinates lie in (0, 1].

    Raises:
        ValueError: If image is not a finite 2D numeric array
    """
    image = check_array(image, dtype=np.float64)
    m, n = image.shape

    features = np.empty((3, m * n), dtype=np.float64)
    features[0] = np.tile(np.arange(1, m + 1) / m, n)
    features[1] = np.repeat(np.arange(1, n + 1) / n, m)
    features[2] = image.ravel(order='F')
    return features


def decode_labels(labels: np.ndarray, shape) -> np.ndarray:
    """Inverse of the pixel ordering used by encode_features."""
    return np.asarray(labels).reshape(shape, order='F')
