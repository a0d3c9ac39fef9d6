"""
Preprocesado de imagenes para el motor de clustering.

Componentes principales:
- load_rgb / save_gray: lectura y escritura con Pillow
- rgb_to_gray: conversion a escala de grises en [0, 1]
- level_background: eliminacion del plano de fondo
- renormalize: reescalado afin a [0, 1]
- preprocess: pipeline completo desde un archivo

Example:
    >>> from imganalysis.preprocess import preprocess, PreprocessConfig
    >>> gray = preprocess('sample.png', PreprocessConfig(downsample=4))
    >>> print(gray.min(), gray.max())  # 0.0 1.0
"""

from .background import level_background, renormalize
from .image_io import load_rgb, rgb_to_gray, save_gray
from .pipeline import PreprocessConfig, downsample_image, prepare_gray, preprocess

__all__ = [
    'load_rgb',
    'rgb_to_gray',
    'save_gray',
    'level_background',
    'renormalize',
    'PreprocessConfig',
    'downsample_image',
    'prepare_gray',
    'preprocess',
]
