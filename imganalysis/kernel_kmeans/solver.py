"""
Kernel Power K-Means: annealed convergence driver and clustering engine.

The driver repeats the refinement step while sharpening the exponent
(p ← p·1.04), takes the hard labels as the row-wise argmax of the weights
and counts how many points changed label. It stops when that change count
has stayed the same for ``patience`` iterations (CONVERGED) or when the
iteration budget is spent (BUDGET_EXHAUSTED).

Letting p grow without bound eventually evaluates -log(0) - log(inf) in
the weight formula; the budget bounds the run and NaN is reported as a
NumericalDegeneracyError by the refinement step.

Example:
    >>> from imganalysis.kernel_kmeans import KernelPowerKMeans, ClusteringConfig
    >>>
    >>> engine = KernelPowerKMeans(image, ClusteringConfig(n_clusters=3))
    >>> result = engine.fit()
    >>> print(result)
    >>> engine.reconfigure(gray_scale=8.0)   # rebuilds the kernel
    True
    >>> engine.reconfigure(n_clusters=4)     # reuses it
    False
"""

from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
import logging
import os

import numpy as np
from sklearn.utils import check_random_state
from threadpoolctl import threadpool_limits

from .config import ClusteringConfig, workspace_needs_realloc
from .encoding import encode_features, decode_labels
from .errors import InvalidConfigurationError
from .kernel import compute_kernel, rebuild_kernel_if_needed
from .refinement import refine_step
from .seeding import kmeanspp_init
from .workspace import UNASSIGNED, ActiveView, Workspace

logger = logging.getLogger(__name__)


# ============================================================================
# Driver
# ============================================================================

class ConvergenceStatus(Enum):
    """States of the annealing loop."""
    RUNNING = "running"
    CONVERGED = "converged"
    BUDGET_EXHAUSTED = "budget_exhausted"
    CANCELLED = "cancelled"


@dataclass
class AnnealOutcome:
    """How the annealing loop ended."""
    status: ConvergenceStatus
    n_iter: int
    final_power: float


def anneal(
    view: ActiveView,
    kernel: np.ndarray,
    power: float,
    growth: float = 1.04,
    max_iter: int = 200,
    patience: int = 10,
    executor: Optional[Executor] = None,
    should_stop: Optional[Callable[[], bool]] = None
) -> AnnealOutcome:
    """
    Refine the seeded weights until the hard partition stagnates.

    view.result holds the hard labels (1..K) and view.iteration_log the
    per-iteration change counts; entries past the last iteration stay -1.

    Args:
        view: Workspace slice with seeded weights
        kernel: Gram matrix (N, N)
        power: Exponent of the first iteration, strictly negative
        growth: Factor applied to the exponent after every iteration
        max_iter: Iteration budget (at most len(view.iteration_log))
        patience: Iterations with an unchanged change count before stopping
        executor: Thread pool for the per-cluster updates
        should_stop: Checked between iterations; True cancels the run

    Returns:
        AnnealOutcome with final status, iteration count and exponent

    Raises:
        InvalidConfigurationError: If power is not strictly negative
        NumericalDegeneracyError: If the refinement degenerates
    """
    if not power < 0:
        raise InvalidConfigurationError(f"power must be a negative real number, got {power}")

    log = view.iteration_log
    max_iter = min(max_iter, len(log))
    log.fill(-1)

    changes = -1
    trapped = 0
    itcount = 0
    status = ConvergenceStatus.RUNNING

    while True:
        if trapped >= patience:
            status = ConvergenceStatus.CONVERGED
            break
        if itcount >= max_iter:
            status = ConvergenceStatus.BUDGET_EXHAUSTED
            break
        if should_stop is not None and should_stop():
            status = ConvergenceStatus.CANCELLED
            break

        refine_step(view, kernel, power, executor)

        labels = np.argmax(view.weights, axis=1) + 1
        change = int(np.count_nonzero(labels != view.result))
        view.result[:] = labels

        log[itcount] = change
        itcount += 1

        if change != changes:
            changes = change
            trapped = 0
        else:
            trapped += 1

        logger.debug(f"iter {itcount}: p={power:.4f} changes={change} trapped={trapped}")
        power *= growth

    return AnnealOutcome(status=status, n_iter=itcount, final_power=power)


# ============================================================================
# Results
# ============================================================================

@dataclass
class ClusteringResult:
    """
    Results from Kernel Power K-Means clustering.

    Attributes:
        labels: Hard labels 1..K, same shape as the input image
                (0 only if the run was cancelled before the first iteration)
        iteration_log: Number of points that changed label at each iteration
        n_iter: Number of refinement iterations executed
        status: Terminal state of the annealing loop
        centroid_indices: Pixel indices (column-major) chosen by k-means++
        final_power: Exponent the next iteration would have used
    """
    labels: np.ndarray
    iteration_log: np.ndarray
    n_iter: int
    status: ConvergenceStatus
    centroid_indices: np.ndarray
    final_power: float

    @property
    def converged(self) -> bool:
        return self.status is ConvergenceStatus.CONVERGED

    @property
    def n_clusters(self) -> int:
        return len(self.centroid_indices)

    def cluster_sizes(self) -> np.ndarray:
        """Pixel count per label 1..K."""
        return np.bincount(self.labels.ravel(), minlength=self.n_clusters + 1)[1:]

    def __str__(self) -> str:
        return (
            f"ClusteringResult(K={self.n_clusters}, status={self.status.value}, "
            f"n_iter={self.n_iter}, sizes={self.cluster_sizes().tolist()})"
        )


# ============================================================================
# Engine
# ============================================================================

class KernelPowerKMeans:
    """
    Kernel Power K-Means clustering of a grayscale intensity field.

    Holds the encoded features, the kernel matrix and the workspace
    buffers. Parameters change only through ``reconfigure``, which
    recomputes the kernel when a kernel scale changed and never otherwise.
    """

    def __init__(self, image: np.ndarray, config: Optional[ClusteringConfig] = None):
        """
        Encode the image and build the kernel matrix.

        Args:
            image: Grayscale intensities, shape (H, W)
            config: Configuration parameters. If None, uses defaults.

        Raises:
            ValueError: If image is not a finite 2D array
        """
        self.config = config or ClusteringConfig()
        self.features = encode_features(image)
        self.image_shape = np.shape(image)

        n_points = self.features.shape[1]
        self.kernel = compute_kernel(self.features, self.config.kernel_scales)
        self.workspace = Workspace.allocate(
            n_points, self.config.max_clusters, self.config.max_iter
        )
        self._result: Optional[ClusteringResult] = None

        logger.info(
            f"Kernel Power K-Means ready: image {self.image_shape}, "
            f"{n_points} points, kernel {self.kernel.shape}"
        )

    @property
    def n_points(self) -> int:
        return self.features.shape[1]

    def reconfigure(self, **changes) -> bool:
        """
        Apply parameter changes.

        Args:
            **changes: ClusteringConfig fields to change

        Returns:
            True if the kernel matrix was recomputed

        Raises:
            InvalidConfigurationError: If the new configuration is invalid;
                                       the engine is left unchanged
        """
        new = self.config.replace(**changes)
        if workspace_needs_realloc(self.config, new):
            self.workspace = Workspace.allocate(self.n_points, new.max_clusters, new.max_iter)
        rebuilt = rebuild_kernel_if_needed(self.kernel, self.features, self.config, new)
        self.config = new
        logger.info(f"Reconfigured {sorted(changes)}; kernel rebuilt: {rebuilt}")
        return rebuilt

    def fit(self, should_stop: Optional[Callable[[], bool]] = None) -> ClusteringResult:
        """
        Seed with k-means++ and run the annealed refinement.

        Args:
            should_stop: Optional callback checked between iterations

        Returns:
            ClusteringResult

        Raises:
            InvalidConfigurationError: If n_clusters exceeds the number of pixels
            NumericalDegeneracyError: If the refinement degenerates
        """
        config = self.config
        if config.n_clusters > self.n_points:
            raise InvalidConfigurationError(
                f"n_clusters ({config.n_clusters}) exceeds the number of pixels ({self.n_points})"
            )

        view = self.workspace.active(config.n_clusters)
        view.result.fill(UNASSIGNED)
        rng = check_random_state(config.random_state)
        n_jobs = config.n_jobs or os.cpu_count() or 1

        logger.info(
            f"Clustering {self.n_points} points into {config.n_clusters} clusters "
            f"(p0={config.power_init}, scales={config.kernel_scales})"
        )

        with threadpool_limits(limits=config.blas_threads, user_api='blas'):
            centroids = kmeanspp_init(view, self.kernel, config.power_init, rng)

            if n_jobs > 1 and config.n_clusters > 1:
                with ThreadPoolExecutor(max_workers=min(n_jobs, config.n_clusters)) as executor:
                    outcome = self._anneal(view, executor, should_stop)
            else:
                outcome = self._anneal(view, None, should_stop)

        if outcome.status is ConvergenceStatus.BUDGET_EXHAUSTED:
            logger.warning(
                f"Stopped after the {outcome.n_iter}-iteration budget without stagnating"
            )
        else:
            logger.info(f"Finished: {outcome.status.value} after {outcome.n_iter} iterations")

        self._result = ClusteringResult(
            labels=decode_labels(view.result.copy(), self.image_shape),
            iteration_log=view.iteration_log[:outcome.n_iter].copy(),
            n_iter=outcome.n_iter,
            status=outcome.status,
            centroid_indices=centroids,
            final_power=outcome.final_power,
        )
        return self._result

    def _anneal(self, view, executor, should_stop) -> AnnealOutcome:
        config = self.config
        return anneal(
            view,
            self.kernel,
            config.power_init * config.power_growth,
            growth=config.power_growth,
            max_iter=config.max_iter,
            patience=config.patience,
            executor=executor,
            should_stop=should_stop,
        )

    @property
    def labels(self) -> np.ndarray:
        """
        Hard labels of the last fit, shape (H, W).

        Raises:
            RuntimeError: If not fitted yet
        """
        if self._result is None:
            raise RuntimeError("Must call fit() before accessing labels")
        return self._result.labels

    @property
    def iteration_log(self) -> np.ndarray:
        """
        Change counts of the last fit.

        Raises:
            RuntimeError: If not fitted yet
        """
        if self._result is None:
            raise RuntimeError("Must call fit() before accessing iteration_log")
        return self._result.iteration_log
