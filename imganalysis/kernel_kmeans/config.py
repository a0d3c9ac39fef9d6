"""
Kernel Power K-Means Configuration

Immutable parameter block for the clustering engine, plus the explicit
rebuild decisions used after a reconfiguration.
"""

import dataclasses
from dataclasses import dataclass
from typing import Optional, Tuple
import math

from .errors import InvalidConfigurationError


@dataclass(frozen=True)
class ClusteringConfig:
    """
    Configuration for Kernel Power K-Means clustering.

    Kernel: k(x, y) = exp(-γH |Δh| - γW |Δw| - γG |Δg|)
    """
    n_clusters: int = 2
    """Active number of clusters K (1 <= K <= max_clusters)."""

    max_clusters: int = 10
    """Capacity of the preallocated weight/distance buffers."""

    power_init: float = -1.0
    """Initial exponent p of the power mean. Must be strictly negative."""

    height_scale: float = 1.5
    """γH, weight of the row-coordinate difference."""

    width_scale: float = 1.5
    """γW, weight of the column-coordinate difference."""

    gray_scale: float = 6.0
    """γG, weight of the grayscale difference."""

    power_growth: float = 1.04
    """Factor applied to p after every iteration (p stays negative)."""

    max_iter: int = 200
    """Iteration budget of the annealing loop."""

    patience: int = 10
    """Consecutive iterations with an unchanged change count before stopping."""

    random_state: Optional[int] = 42
    """Seed for the first k-means++ centroid."""

    n_jobs: Optional[int] = None
    """Worker threads for the per-cluster update. None uses all cores, 1 is serial."""

    blas_threads: Optional[int] = 4
    """Upper bound on BLAS threads during a fit. None leaves the library default."""

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.max_clusters < 1:
            raise InvalidConfigurationError(
                f"max_clusters must be >= 1, got {self.max_clusters}"
            )
        if self.n_clusters < 1:
            raise InvalidConfigurationError(
                f"n_clusters must be positive, got {self.n_clusters}"
            )
        if self.n_clusters > self.max_clusters:
            raise InvalidConfigurationError(
                f"n_clusters ({self.n_clusters}) exceeds max_clusters ({self.max_clusters})"
            )
        if not (math.isfinite(self.power_init) and self.power_init < 0):
            raise InvalidConfigurationError(
                f"power_init must be a negative real number, got {self.power_init}"
            )
        for name, value in zip(("height_scale", "width_scale", "gray_scale"), self.kernel_scales):
            if not (math.isfinite(value) and value >= 0):
                raise InvalidConfigurationError(f"{name} must be >= 0, got {value}")
        if not (math.isfinite(self.power_growth) and self.power_growth > 1):
            raise InvalidConfigurationError(
                f"power_growth must be > 1, got {self.power_growth}"
            )
        if self.max_iter < 1:
            raise InvalidConfigurationError(f"max_iter must be >= 1, got {self.max_iter}")
        if self.patience < 1:
            raise InvalidConfigurationError(f"patience must be >= 1, got {self.patience}")
        if self.n_jobs is not None and self.n_jobs < 1:
            raise InvalidConfigurationError(f"n_jobs must be >= 1, got {self.n_jobs}")
        if self.blas_threads is not None and self.blas_threads < 1:
            raise InvalidConfigurationError(
                f"blas_threads must be >= 1, got {self.blas_threads}"
            )

    @property
    def kernel_scales(self) -> Tuple[float, float, float]:
        """(γH, γW, γG)"""
        return (self.height_scale, self.width_scale, self.gray_scale)

    def replace(self, **changes) -> 'ClusteringConfig':
        """
        Return a validated copy with the given fields changed.

        Raises:
            InvalidConfigurationError: If the new values are invalid
            TypeError: If a field name is unknown
        """
        return dataclasses.replace(self, **changes)


def kernel_needs_rebuild(old: ClusteringConfig, new: ClusteringConfig) -> bool:
    """Only the kernel scales feed the Gram matrix."""
    return old.kernel_scales != new.kernel_scales


def workspace_needs_realloc(old: ClusteringConfig, new: ClusteringConfig) -> bool:
    """Buffers are sized by capacity and iteration budget, never by the active K."""
    return old.max_clusters != new.max_clusters or old.max_iter != new.max_iter
