"""
Unit tests for the kernel (Gram) matrix
"""

import numpy as np
import pytest

from imganalysis.kernel_kmeans import (
    ClusteringConfig,
    compute_kernel,
    encode_features,
    rebuild_kernel_if_needed,
)


def test_kernel_exactly_symmetric_with_unit_diagonal(random_image):
    kernel = compute_kernel(encode_features(random_image), (1.5, 1.5, 6.0))

    n = random_image.size
    assert kernel.shape == (n, n)
    assert np.array_equal(kernel, kernel.T)
    assert np.all(np.diagonal(kernel) == 1.0)


def test_kernel_matches_formula(random_image):
    features = encode_features(random_image)
    scales = (1.5, 0.7, 6.0)
    kernel = compute_kernel(features, scales)

    i, j = 3, 17
    delta = np.abs(features[:, i] - features[:, j])
    expected = np.exp(-scales[0] * delta[0] - scales[1] * delta[1] - scales[2] * delta[2])
    assert kernel[i, j] == pytest.approx(expected, rel=1e-12)
    assert np.all(kernel > 0)
    assert np.all(kernel <= 1)


def test_identical_points_give_all_ones_kernel(identical_pair):
    image, config = identical_pair
    kernel = compute_kernel(encode_features(image), config.kernel_scales)
    np.testing.assert_array_equal(kernel, np.ones((2, 2)))


def test_kernel_written_in_place(random_image):
    features = encode_features(random_image)
    buffer = np.zeros((random_image.size, random_image.size))
    returned = compute_kernel(features, (1.0, 1.0, 1.0), out=buffer)
    assert returned is buffer
    assert np.all(np.diagonal(buffer) == 1.0)


def test_kernel_buffer_shape_checked(random_image):
    with pytest.raises(ValueError):
        compute_kernel(encode_features(random_image), (1.0, 1.0, 1.0), out=np.zeros((3, 3)))


def test_single_pixel_kernel():
    kernel = compute_kernel(encode_features(np.array([[0.3]])), (1.5, 1.5, 6.0))
    np.testing.assert_array_equal(kernel, [[1.0]])


def test_rebuild_kernel_if_needed(random_image):
    features = encode_features(random_image)
    config = ClusteringConfig()
    kernel = compute_kernel(features, config.kernel_scales)
    before = kernel.copy()

    assert rebuild_kernel_if_needed(kernel, features, config, config.replace(n_clusters=4)) is False
    assert np.array_equal(kernel, before)

    new = config.replace(gray_scale=1.0)
    assert rebuild_kernel_if_needed(kernel, features, config, new) is True
    assert not np.array_equal(kernel, before)
    np.testing.assert_array_equal(kernel, compute_kernel(features, new.kernel_scales))
