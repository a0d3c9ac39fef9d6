"""
Preallocated scratch buffers for the clustering iterations.

Buffers are sized by the cluster capacity (``max_clusters``); a run works
on an ``ActiveView`` that slices the first K columns. Changing K therefore
reuses the same memory, only the capacity or the iteration budget forces a
reallocation.

Buffer naming (N points, K clusters):
    weights        (N, K)  soft membership wₙₖ
    distances      (N, K)  kernel distance dₙₖ to the soft centroid k
    log_powers     (N, K)  p·log(dₙₖ)
    log_power_sum  (N,)    log Σₖ (dₙₖ)ᵖ
    cluster_volume (1, K)  Σₙ wₙₖ
"""

from dataclasses import dataclass

import numpy as np

# Marks a point that has not been assigned yet; real labels are 1..K
UNASSIGNED = 0


@dataclass
class ActiveView:
    """Views of a Workspace restricted to the active cluster count."""
    weights: np.ndarray
    distances: np.ndarray
    log_powers: np.ndarray
    cluster_volume: np.ndarray
    log_power_sum: np.ndarray
    iteration_log: np.ndarray
    result: np.ndarray

    @property
    def n_points(self) -> int:
        return self.weights.shape[0]

    @property
    def n_clusters(self) -> int:
        return self.weights.shape[1]


@dataclass
class Workspace:
    """Fixed-capacity buffers owned by the clustering engine."""
    weights: np.ndarray
    distances: np.ndarray
    log_powers: np.ndarray
    cluster_volume: np.ndarray
    log_power_sum: np.ndarray
    iteration_log: np.ndarray
    result: np.ndarray

    @classmethod
    def allocate(cls, n_points: int, capacity: int, max_iter: int) -> 'Workspace':
        """
        Allocate buffers for ``n_points`` points and up to ``capacity`` clusters.

        Matrices are column-major so each cluster column is contiguous.
        """
        if n_points < 1 or capacity < 1 or max_iter < 1:
            raise ValueError(
                f"Invalid workspace size: n_points={n_points}, "
                f"capacity={capacity}, max_iter={max_iter}"
            )
        return cls(
            weights=np.zeros((n_points, capacity), order='F'),
            distances=np.zeros((n_points, capacity), order='F'),
            log_powers=np.zeros((n_points, capacity), order='F'),
            cluster_volume=np.zeros((1, capacity)),
            log_power_sum=np.zeros(n_points),
            iteration_log=np.full(max_iter, -1, dtype=np.int64),
            result=np.full(n_points, UNASSIGNED, dtype=np.int64),
        )

    @property
    def capacity(self) -> int:
        return self.weights.shape[1]

    @property
    def n_points(self) -> int:
        return self.weights.shape[0]

    def active(self, n_clusters: int) -> ActiveView:
        """
        Slice the buffers down to the first ``n_clusters`` columns.

        Raises:
            IndexError: If n_clusters is outside [1, capacity]
        """
        if not 1 <= n_clusters <= self.capacity:
            raise IndexError(
                f"n_clusters must be in [1, {self.capacity}], got {n_clusters}"
            )
        return ActiveView(
            weights=self.weights[:, :n_clusters],
            distances=self.distances[:, :n_clusters],
            log_powers=self.log_powers[:, :n_clusters],
            cluster_volume=self.cluster_volume[:, :n_clusters],
            log_power_sum=self.log_power_sum,
            iteration_log=self.iteration_log,
            result=self.result,
        )
