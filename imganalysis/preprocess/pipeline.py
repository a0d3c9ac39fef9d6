"""
Preprocessing pipeline: image file -> cluster-ready grayscale field.

Steps: load (Pillow) -> grayscale -> optional downsampling (OpenCV)
-> background leveling -> renormalization to [0, 1] -> optional save.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import logging

import cv2
import numpy as np

from .background import level_background, renormalize
from .image_io import load_rgb, rgb_to_gray, save_gray

logger = logging.getLogger(__name__)


@dataclass
class PreprocessConfig:
    """
    Configuration for preprocessing.

    Attributes:
        downsample: Integer shrink factor applied before leveling (1 = none).
                    The kernel matrix grows with (H*W)^2, so large photos
                    usually need this.
        level: Whether to subtract the background plane
        save_path: If set, the result is written there as an 8-bit image
    """
    downsample: int = 1
    level: bool = True
    save_path: Optional[Union[str, Path]] = None

    def __post_init__(self):
        """Validate configuration."""
        if self.downsample < 1:
            raise ValueError(f"downsample must be >= 1, got {self.downsample}")

        if isinstance(self.save_path, str):
            self.save_path = Path(self.save_path)


def downsample_image(image: np.ndarray, factor: int) -> np.ndarray:
    """Shrink by an integer factor with area averaging."""
    if factor == 1:
        return image
    h, w = image.shape[:2]
    size = (max(1, w // factor), max(1, h // factor))
    return cv2.resize(image, size, interpolation=cv2.INTER_AREA)


def prepare_gray(image: np.ndarray, config: Optional[PreprocessConfig] = None) -> np.ndarray:
    """
    Run the in-memory steps on an RGB or grayscale array.

    Returns:
        float64 array (H', W') with values in [0, 1]
    """
    config = config or PreprocessConfig()

    gray = downsample_image(rgb_to_gray(image), config.downsample)
    if config.level:
        gray = level_background(gray)
    return renormalize(gray)


def preprocess(
    image_path: Union[str, Path],
    config: Optional[PreprocessConfig] = None
) -> np.ndarray:
    """
    Load an image file and prepare it for clustering.

    Args:
        image_path: Path to the image
        config: Preprocessing options. If None, uses defaults.

    Returns:
        float64 array (H', W') with values in [0, 1]

    Raises:
        FileNotFoundError: If the image does not exist
        ValueError: If the prepared image is constant or too small to level
    """
    config = config or PreprocessConfig()

    result = prepare_gray(load_rgb(image_path), config)
    logger.info(f"Preprocessed {image_path}: shape {result.shape}")

    if config.save_path is not None:
        save_gray(config.save_path, result)
        logger.info(f"Saved preprocessed image to {config.save_path}")

    return result
