"""
Tests for hubness profiles and the scikit-learn neighbor-graph service.
"""

import numpy as np
import pytest

from hub_clustering.algorithms.errors import InvalidConfigurationError
from hub_clustering.algorithms.hubness import (
    HubnessProfile,
    NeighborGraphService,
    SklearnNeighborGraph,
    as_hubness_profile,
    build_hubness_profile,
)


# ------------------------------------------------------------------
# HubnessProfile
# ------------------------------------------------------------------


def test_profile_is_read_only_int_array():
    profile = HubnessProfile([3, 0, 2.0])
    assert profile.frequencies.dtype == np.int64
    assert len(profile) == 3
    assert profile[0] == 3
    with pytest.raises(ValueError):
        profile.frequencies[0] = 5


def test_profile_rejects_bad_frequencies():
    with pytest.raises(InvalidConfigurationError, match="non-negative"):
        HubnessProfile([1, -1])
    with pytest.raises(InvalidConfigurationError, match="integers"):
        HubnessProfile([1.5, 2.0])
    with pytest.raises(InvalidConfigurationError, match="1-D"):
        HubnessProfile(np.zeros((2, 2), dtype=int))


def test_frequency_outside_profile_is_zero():
    profile = HubnessProfile([4, 1])
    assert profile.frequency(7) == 0
    np.testing.assert_array_equal(profile.for_members([1, 0, 9]), [1, 4, 0])


def test_from_neighbor_indices_counts_occurrences():
    neighbors = np.array([[1, 2], [0, 2], [1, 0], [2, 1]])
    profile = HubnessProfile.from_neighbor_indices(neighbors)
    np.testing.assert_array_equal(profile.frequencies, [2, 3, 3, 0])
    assert profile.k == 2
    assert profile.is_complete()


def test_supervised_rescales_small_scores():
    """Fractional scores are scaled up before truncation so they do not all become 0."""
    profile = HubnessProfile.supervised(
        good_frequencies=[1, 0, 2],
        bad_frequencies=[0, 1, 0],
        weights=[0.5, 0.25, 0.125],
    )
    np.testing.assert_array_equal(profile.frequencies, [50, 25, 25])
    assert profile.source == "supervised"


def test_supervised_keeps_large_scores():
    profile = HubnessProfile.supervised([100, 60], [0, 0], [1.0, 1.0])
    np.testing.assert_array_equal(profile.frequencies, [100, 60])


def test_supervised_shape_mismatch():
    with pytest.raises(InvalidConfigurationError, match="same shape"):
        HubnessProfile.supervised([1, 2], [1], [1, 1])


# ------------------------------------------------------------------
# Neighbor-graph service
# ------------------------------------------------------------------


def test_sklearn_graph_excludes_self(small_data):
    graph = SklearnNeighborGraph()
    indices = graph.neighbor_indices(small_data, 5)
    assert indices.shape == (len(small_data), 5)
    for i, row in enumerate(indices):
        assert i not in row


def test_sklearn_frequencies_sum_to_n_times_k(small_data):
    freqs = SklearnNeighborGraph().occurrence_frequencies(small_data, 4)
    assert freqs.shape == (len(small_data),)
    assert freqs.sum() == len(small_data) * 4


def test_sklearn_graph_validates_k(small_data):
    graph = SklearnNeighborGraph()
    with pytest.raises(InvalidConfigurationError, match="k must be in"):
        graph.neighbor_indices(small_data, len(small_data))
    with pytest.raises(InvalidConfigurationError):
        graph.neighbor_indices(small_data, 0)


def test_sklearn_distance_matrix_matches_numpy(small_data):
    D = SklearnNeighborGraph().distance_matrix(small_data)
    expected = np.linalg.norm(small_data[:, None, :] - small_data[None, :, :], axis=-1)
    np.testing.assert_allclose(D, expected, atol=1e-6)


def test_build_hubness_profile_default_service(small_data):
    profile = build_hubness_profile(small_data, k=3)
    assert profile.k == 3
    assert profile.is_complete()
    assert isinstance(SklearnNeighborGraph(), NeighborGraphService)


def test_build_hubness_profile_custom_service(small_data):
    class ConstantGraph:
        def occurrence_frequencies(self, data, k):
            return np.full(len(data), k)

    profile = build_hubness_profile(small_data, 2, ConstantGraph())
    assert profile.source == "ConstantGraph"
    assert profile.total == 2 * len(small_data)


def test_build_hubness_profile_checks_service_output(small_data):
    class BrokenGraph:
        def occurrence_frequencies(self, data, k):
            return np.zeros(3, dtype=int)

    with pytest.raises(InvalidConfigurationError, match="returned"):
        build_hubness_profile(small_data, 2, BrokenGraph())


def test_as_hubness_profile_length_check():
    assert len(as_hubness_profile([1, 2, 3], 3)) == 3
    with pytest.raises(InvalidConfigurationError, match="covers 2 points"):
        as_hubness_profile([1, 2], 3)
