"""
Counting of connected areas in a label image.

A region is a maximal 4-connected set of pixels sharing one label
(diagonal neighbours are not connected). Each region is summarized by its
mean row, mean column and pixel area. Regions are listed in column-major
scan order of their first pixel, the same order the clustering engine
uses for pixel indices.
"""

from dataclasses import dataclass
from typing import Dict, List

import cv2
import numpy as np


@dataclass
class Region:
    """
    One connected area.

    Attributes:
        row: Mean row index of its pixels (0-based, add 1 for 1-based)
        col: Mean column index of its pixels (0-based, add 1 for 1-based)
        area: Number of pixels
    """
    row: float
    col: float
    area: int


def count_regions(labels: np.ndarray, target: int) -> List[Region]:
    """
    Find the 4-connected areas of pixels equal to ``target``.

    Args:
        labels: Label image, shape (H, W)
        target: Label value to look for

    Returns:
        Regions in column-major order of their first pixel, empty if
        target is absent

    Raises:
        ValueError: If labels is not 2D
    """
    labels = np.asarray(labels)
    if labels.ndim != 2:
        raise ValueError(f"Labels must be 2D array (H, W), got shape {labels.shape}")

    mask = (labels == target).astype(np.uint8)
    _, components, stats, centroids = cv2.connectedComponentsWithStats(
        mask, connectivity=4
    )

    # OpenCV numbers components in row-major order
    ids, first = np.unique(components.ravel(order='F'), return_index=True)
    order = ids[np.argsort(first)]

    # component 0 is the background; centroids are (x, y)
    return [
        Region(
            row=float(centroids[c, 1]),
            col=float(centroids[c, 0]),
            area=int(stats[c, cv2.CC_STAT_AREA]),
        )
        for c in order
        if c != 0
    ]


def count_all_regions(labels: np.ndarray) -> Dict[int, List[Region]]:
    """
    Regions for every label present in ``labels`` (unassigned 0 skipped).

    Returns:
        {label: [Region, ...]} sorted by label
    """
    return {
        int(label): count_regions(labels, label)
        for label in np.unique(labels)
        if label != 0
    }
