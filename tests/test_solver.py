"""
Unit tests for the annealing driver and the KernelPowerKMeans engine
"""

import numpy as np
import pytest

from imganalysis.kernel_kmeans import (
    ClusteringConfig,
    ConvergenceStatus,
    InvalidConfigurationError,
    KernelPowerKMeans,
    NumericalDegeneracyError,
    Workspace,
    anneal,
    compute_kernel,
    encode_features,
    kmeanspp_init,
)


# ================================================================
# Scenarios
# ================================================================


def test_two_regions_get_different_labels(two_region_image):
    engine = KernelPowerKMeans(two_region_image, ClusteringConfig(n_clusters=2))
    result = engine.fit()

    labels = result.labels
    assert labels.shape == (4, 4)
    assert len(np.unique(labels[:, :2])) == 1
    assert len(np.unique(labels[:, 2:])) == 1
    assert labels[0, 0] != labels[0, 3]
    assert set(np.unique(labels)) == {1, 2}

    assert result.status is ConvergenceStatus.CONVERGED
    assert result.converged
    assert result.n_iter < 200
    assert result.iteration_log[-1] == 0
    # first pass assigns every pixel
    assert result.iteration_log[0] == 16


@pytest.mark.parametrize("seed", [0, 1, 5])
def test_two_regions_independent_of_seed(two_region_image, seed):
    config = ClusteringConfig(n_clusters=2, random_state=seed)
    labels = KernelPowerKMeans(two_region_image, config).fit().labels
    assert labels[0, 0] != labels[3, 3]
    np.testing.assert_array_equal(labels[:, 0], labels[:, 1])
    np.testing.assert_array_equal(labels[:, 2], labels[:, 3])


def test_identical_pair_collapses_to_one_label(identical_pair):
    image, config = identical_pair
    engine = KernelPowerKMeans(image, config)
    np.testing.assert_array_equal(engine.kernel, np.ones((2, 2)))

    result = engine.fit()
    assert result.labels[0, 0] == result.labels[0, 1]
    assert result.status is ConvergenceStatus.CONVERGED


# ================================================================
# Iteration log and termination
# ================================================================


def test_iteration_log_bounds(random_image):
    result = KernelPowerKMeans(random_image, ClusteringConfig(n_clusters=3)).fit()
    assert 1 <= len(result.iteration_log) <= 200
    assert len(result.iteration_log) == result.n_iter
    assert np.all(result.iteration_log >= 0)
    assert np.all(result.labels >= 1)
    assert np.all(result.labels <= 3)


def test_budget_exhausted_stops_at_cap(random_image):
    config = ClusteringConfig(n_clusters=3, max_iter=3)
    result = KernelPowerKMeans(random_image, config).fit()
    assert result.status is ConvergenceStatus.BUDGET_EXHAUSTED
    assert result.n_iter == 3
    assert len(result.iteration_log) == 3


def test_converges_after_patience_flat_iterations(two_region_image):
    config = ClusteringConfig(n_clusters=2, patience=3)
    result = KernelPowerKMeans(two_region_image, config).fit()
    assert result.status is ConvergenceStatus.CONVERGED
    tail = result.iteration_log[-4:]
    assert np.all(tail == tail[-1])


def test_final_power_annealed(two_region_image):
    config = ClusteringConfig(n_clusters=2)
    result = KernelPowerKMeans(two_region_image, config).fit()
    expected = config.power_init * config.power_growth ** (result.n_iter + 1)
    assert result.final_power == pytest.approx(expected)
    assert result.final_power < config.power_init


def test_cancellation_between_iterations(random_image):
    calls = []

    def stop_after_two():
        calls.append(1)
        return len(calls) > 2

    result = KernelPowerKMeans(random_image, ClusteringConfig(n_clusters=2)).fit(
        should_stop=stop_after_two
    )
    assert result.status is ConvergenceStatus.CANCELLED
    assert result.n_iter == 2


def test_anneal_rejects_non_negative_power(random_image):
    kernel = compute_kernel(encode_features(random_image), (1.5, 1.5, 6.0))
    view = Workspace.allocate(random_image.size, 2, 200).active(2)
    kmeanspp_init(view, kernel, -1.0, np.random.RandomState(0))

    for power in (0.0, 1.0):
        with pytest.raises(InvalidConfigurationError):
            anneal(view, kernel, power)


def test_anneal_log_sentinel(random_image):
    kernel = compute_kernel(encode_features(random_image), (1.5, 1.5, 6.0))
    view = Workspace.allocate(random_image.size, 2, 200).active(2)
    kmeanspp_init(view, kernel, -1.0, np.random.RandomState(0))

    outcome = anneal(view, kernel, -1.04, max_iter=5, patience=10)
    assert outcome.n_iter == 5
    assert np.all(view.iteration_log[:5] >= 0)
    assert np.all(view.iteration_log[5:] == -1)


def test_serial_and_threaded_fit_agree(random_image):
    serial = KernelPowerKMeans(random_image, ClusteringConfig(n_clusters=3, n_jobs=1)).fit()
    threaded = KernelPowerKMeans(random_image, ClusteringConfig(n_clusters=3, n_jobs=3)).fit()
    np.testing.assert_array_equal(serial.labels, threaded.labels)
    np.testing.assert_array_equal(serial.iteration_log, threaded.iteration_log)


def test_long_annealing_never_leaves_points_weightless():
    # p reaches about -2650 here, where (d ** p) overflows for d < 0.77
    image = np.random.RandomState(2).rand(10, 10)
    config = ClusteringConfig(n_clusters=3, random_state=2, patience=1000)
    engine = KernelPowerKMeans(image, config)

    try:
        result = engine.fit()
    except NumericalDegeneracyError:
        return

    assert result.status is ConvergenceStatus.BUDGET_EXHAUSTED
    view = engine.workspace.active(3)
    kept = (view.weights > 0).any(axis=1) | (view.distances == 0).any(axis=1)
    assert kept.all()


# ================================================================
# Reconfiguration
# ================================================================


def test_reconfigure_cluster_count_keeps_kernel(random_image):
    engine = KernelPowerKMeans(random_image)
    before = engine.kernel.copy()

    assert engine.reconfigure(n_clusters=4) is False
    assert engine.config.n_clusters == 4
    assert np.array_equal(engine.kernel, before)


def test_reconfigure_scale_rebuilds_kernel(random_image):
    engine = KernelPowerKMeans(random_image)
    before = engine.kernel.copy()

    assert engine.reconfigure(gray_scale=2.0) is True
    assert not np.array_equal(engine.kernel, before)
    assert np.array_equal(engine.kernel, engine.kernel.T)


def test_reconfigure_invalid_leaves_engine_unchanged(random_image):
    engine = KernelPowerKMeans(random_image)
    config = engine.config
    with pytest.raises(InvalidConfigurationError):
        engine.reconfigure(n_clusters=engine.config.max_clusters + 1)
    with pytest.raises(InvalidConfigurationError):
        engine.reconfigure(power_init=0.0)
    assert engine.config is config


def test_reconfigure_capacity_reallocates_workspace(random_image):
    engine = KernelPowerKMeans(random_image)
    workspace = engine.workspace

    engine.reconfigure(n_clusters=3)
    assert engine.workspace is workspace

    engine.reconfigure(max_clusters=12)
    assert engine.workspace is not workspace
    assert engine.workspace.capacity == 12


def test_refit_after_reconfigure(two_region_image):
    engine = KernelPowerKMeans(two_region_image, ClusteringConfig(n_clusters=2))
    engine.fit()
    engine.reconfigure(n_clusters=3)
    result = engine.fit()
    assert result.n_clusters == 3
    assert result.iteration_log[0] == 16


# ================================================================
# Errors
# ================================================================


def test_labels_before_fit_raise(random_image):
    engine = KernelPowerKMeans(random_image)
    with pytest.raises(RuntimeError):
        _ = engine.labels
    with pytest.raises(RuntimeError):
        _ = engine.iteration_log


def test_more_clusters_than_pixels():
    engine = KernelPowerKMeans(np.array([[0.1, 0.9]]), ClusteringConfig(n_clusters=3))
    with pytest.raises(InvalidConfigurationError):
        engine.fit()


def test_result_summary(two_region_image):
    result = KernelPowerKMeans(two_region_image).fit()
    assert sorted(result.cluster_sizes().tolist()) == [8, 8]
    assert "converged" in str(result)
