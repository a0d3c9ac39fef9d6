import numpy as np
import pytest
from PIL import Image

from imganalysis.kernel_kmeans import ClusteringConfig


@pytest.fixture
def two_region_image():
    # 4x4: columns 0-1 dark, columns 2-3 bright
    image = np.zeros((4, 4))
    image[:, 2:] = 1.0
    return image


@pytest.fixture
def random_image():
    return np.random.RandomState(7).rand(5, 6)


@pytest.fixture
def identical_pair():
    """Two pixels that coincide once spatial scales are zeroed."""
    image = np.array([[0.5, 0.5]])
    config = ClusteringConfig(n_clusters=2, height_scale=0.0, width_scale=0.0)
    return image, config


@pytest.fixture
def block_png(tmp_path):
    def _make(name="blocks.png", h=6, w=6):
        rgb = np.zeros((h, w, 3), dtype=np.uint8)
        rgb[:, w // 2:] = 220
        rgb[: h // 2, : w // 2] = 40
        path = tmp_path / name
        Image.fromarray(rgb).save(path)
        return path

    return _make
