"""
Tests for metrics and the lazy pairwise distance cache.
"""

import numpy as np
import pytest

from hub_clustering.algorithms.distance_cache import (
    PairwiseDistanceCache,
    cosine_distance,
    euclidean_distance,
    manhattan_distance,
    resolve_metric,
)


# ------------------------------------------------------------------
# Metrics
# ------------------------------------------------------------------


def test_builtin_metrics():
    a = np.array([0.0, 0.0])
    b = np.array([3.0, 4.0])
    assert euclidean_distance(a, b) == pytest.approx(5.0)
    assert manhattan_distance(a, b) == pytest.approx(7.0)


def test_cosine_distance_edge_cases():
    """Opposite vectors are 2 apart, a zero vector is 1 from everything."""
    a = np.array([1.0, 0.0])
    assert cosine_distance(a, a) == pytest.approx(0.0)
    assert cosine_distance(a, -a) == pytest.approx(2.0)
    assert cosine_distance(a, np.zeros(2)) == pytest.approx(1.0)


def test_resolve_metric():
    assert resolve_metric(None) is euclidean_distance
    assert resolve_metric("Manhattan") is manhattan_distance

    def custom(a, b):
        return 1.0

    assert resolve_metric(custom) is custom
    with pytest.raises(ValueError, match="metric must be one of"):
        resolve_metric("chebyshev-ish")


# ------------------------------------------------------------------
# PairwiseDistanceCache
# ------------------------------------------------------------------


def test_distance_is_symmetric_and_zero_on_diagonal(small_data):
    cache = PairwiseDistanceCache(small_data)
    assert cache.distance(3, 3) == 0.0
    assert cache.distance(2, 7) == cache.distance(7, 2)
    assert cache.distance(2, 7) == pytest.approx(
        np.linalg.norm(small_data[2] - small_data[7])
    )


def test_each_pair_evaluated_once(small_data):
    """Repeated lookups hit the cache instead of the metric."""
    calls = []

    def counting_metric(a, b):
        calls.append(1)
        return float(np.abs(a - b).sum())

    cache = PairwiseDistanceCache(small_data, metric=counting_metric)
    assert not cache.is_cached(0, 5)
    for _ in range(3):
        cache.distance(0, 5)
        cache.distance(5, 0)
    assert len(calls) == 1
    assert cache.evaluations == 1
    assert cache.is_cached(5, 0)
    assert cache.stored_pairs == 1


def test_fill_and_upper_triangular_layout():
    X = np.arange(8, dtype=float).reshape(4, 2)
    cache = PairwiseDistanceCache(X).fill()
    rows = cache.upper_triangular()
    assert [len(row) for row in rows] == [3, 2, 1, 0]
    assert cache.stored_pairs == 6
    assert rows[0][2] == pytest.approx(np.linalg.norm(X[0] - X[3]))


def test_precomputed_square_matrix_is_used(small_data):
    n = len(small_data)
    matrix = np.full((n, n), 9.0)
    cache = PairwiseDistanceCache(small_data, matrix=matrix)
    assert cache.distance(1, 4) == 9.0
    assert cache.evaluations == 0


def test_precomputed_nan_entries_are_filled_lazily():
    X = np.array([[0.0], [1.0], [3.0]])
    rows = [np.array([1.0, np.nan]), np.array([np.nan]), np.array([])]
    cache = PairwiseDistanceCache(X, matrix=rows)
    assert cache.distance(0, 1) == 1.0
    assert cache.distance(0, 2) == pytest.approx(3.0)
    assert cache.evaluations == 1


def test_precomputed_matrix_shape_checked(small_data):
    with pytest.raises(ValueError, match="distance matrix must have shape"):
        PairwiseDistanceCache(small_data, matrix=np.zeros((3, 3)))
    with pytest.raises(ValueError, match="row 0 must have length"):
        PairwiseDistanceCache(small_data[:3], matrix=[[1.0], [2.0], []])
