"""
Lectura, conversion a escala de grises y escritura de imagenes.

La decodificacion del formato la hace Pillow; aqui solo se convierten
los arrays al rango [0, 1] que espera el resto del pipeline.
"""

from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image

# Pesos de luminancia R, G, B
GRAY_WEIGHTS = np.array([0.298, 0.588, 0.114])


def load_rgb(image_path: Union[str, Path]) -> np.ndarray:
    """
    Carga una imagen como array RGB.

    Args:
        image_path: Ruta al archivo de imagen (cualquier formato que lea Pillow).

    Returns:
        Array (H, W, 3) dtype uint8 con valores [0, 255].

    Raises:
        FileNotFoundError: Si la imagen no existe.
    """
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Imagen no encontrada: {image_path}")

    with Image.open(image_path) as img:
        return np.array(img.convert('RGB'))


def rgb_to_gray(image: np.ndarray) -> np.ndarray:
    """
    Convierte una imagen RGB a escala de grises en [0, 1].

    gray = 0.298 R + 0.588 G + 0.114 B

    Args:
        image: (H, W, 3) o (H, W, 4) en uint8 [0, 255] o float [0, 1].
               Un array (H, W) se considera ya en grises.

    Returns:
        Array (H, W) dtype float32.

    Raises:
        ValueError: Si la forma no es (H, W) ni (H, W, 3|4).
    """
    image = np.asarray(image)
    scale = 255.0 if image.dtype == np.uint8 else 1.0

    if image.ndim == 2:
        return (image / scale).astype(np.float32)

    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Image must be (H, W, 3), got shape {image.shape}")

    gray = image[..., :3] @ GRAY_WEIGHTS / scale
    return gray.astype(np.float32)


def save_gray(image_path: Union[str, Path], image: np.ndarray) -> Path:
    """
    Guarda una imagen en grises [0, 1] como PNG/JPG de 8 bits.

    Los valores fuera de [0, 1] se recortan.
    """
    image_path = Path(image_path)
    image_path.parent.mkdir(parents=True, exist_ok=True)

    pixels = np.rint(np.clip(image, 0.0, 1.0) * 255.0).astype(np.uint8)
    Image.fromarray(pixels).save(image_path)
    return image_path
