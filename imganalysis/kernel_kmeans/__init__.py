"""
Kernel Power K-Means clustering engine.

Pipeline:
1. encode_features: pixel grid -> (3, N) features [row, col, gray]
2. compute_kernel: anisotropic exponential Gram matrix (N, N)
3. kmeanspp_init: kernelized farthest-point seeding + initial soft weights
4. refine_step: one power-mean refinement sweep
5. anneal: repeat 4 while sharpening p until the partition stagnates

Example:
    >>> from imganalysis.kernel_kmeans import KernelPowerKMeans, ClusteringConfig
    >>>
    >>> engine = KernelPowerKMeans(gray_image, ClusteringConfig(n_clusters=3))
    >>> result = engine.fit()
    >>> result.labels.shape == gray_image.shape
    True
"""

from .config import ClusteringConfig, kernel_needs_rebuild, workspace_needs_realloc
from .encoding import encode_features, decode_labels
from .errors import InvalidConfigurationError, NumericalDegeneracyError
from .kernel import compute_kernel, rebuild_kernel_if_needed
from .refinement import refine_step
from .seeding import kmeanspp_init
from .solver import (
    AnnealOutcome,
    ClusteringResult,
    ConvergenceStatus,
    KernelPowerKMeans,
    anneal
)
from .workspace import ActiveView, Workspace

__all__ = [
    # Configuration
    'ClusteringConfig',
    'kernel_needs_rebuild',
    'workspace_needs_realloc',
    # Errors
    'InvalidConfigurationError',
    'NumericalDegeneracyError',
    # Steps
    'encode_features',
    'decode_labels',
    'compute_kernel',
    'rebuild_kernel_if_needed',
    'kmeanspp_init',
    'refine_step',
    'anneal',
    # Engine
    'KernelPowerKMeans',
    'ClusteringResult',
    'ConvergenceStatus',
    'AnnealOutcome',
    'Workspace',
    'ActiveView',
]
