"""
Metrics and the lazily filled pairwise distance cache.

Distances live in an upper-triangular row layout: row ``i`` holds the
distances from point ``i`` to points ``i+1 .. n-1``, so the pair ``(i, j)``
with ``i < j`` is stored at ``rows[i][j - i - 1]``. Entries that have not been
computed yet are ``NaN``.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Union
import numpy as np

Array2D = np.ndarray
Metric = Callable[[np.ndarray, np.ndarray], float]
MatrixIn = Union[np.ndarray, Sequence[np.ndarray]]


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return float(np.sqrt(np.dot(diff, diff)))


def manhattan_distance(a: np.ndarray, b: np.ndarray) -> float:
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return float(np.sum(np.abs(diff)))


def cosine_distance(a: np.ndarray, b: np.ndarray) -> float:
    """1 - cosine similarity, clipped to [0, 2]. Zero vectors are at distance 1."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom < 1e-12:
        return 1.0
    return float(np.clip(1.0 - np.dot(a, b) / denom, 0.0, 2.0))


METRICS = {
    "euclidean": euclidean_distance,
    "manhattan": manhattan_distance,
    "cosine": cosine_distance,
}


def resolve_metric(metric: Union[str, Metric, None]) -> Metric:
    """
    Turn a metric name or callable into a callable.

    Args:
        metric: One of ``"euclidean"``, ``"manhattan"``, ``"cosine"``, a
            callable ``(a, b) -> float``, or None for euclidean

    Returns:
        The metric callable

    Raises:
        ValueError: If the name is unknown
    """
    if metric is None:
        return euclidean_distance
    if callable(metric):
        return metric
    try:
        return METRICS[str(metric).lower()]
    except KeyError:
        raise ValueError(
            f"metric must be one of {sorted(METRICS)} or a callable, got {metric!r}"
        ) from None


class PairwiseDistanceCache:
    """
    Symmetric distance values computed on demand and never recomputed.

    The cache references the data array, it does not copy it. It is not
    thread-safe; every clustering run owns its own instance.

    Args:
        data: (n, d) array of points
        metric: Metric name or callable
        matrix: Optional precomputed distances, either an (n, n) array or an
            upper-triangular row list. ``NaN`` entries are filled lazily
            through the metric.
    """

    def __init__(
        self,
        data: Array2D,
        metric: Union[str, Metric, None] = "euclidean",
        matrix: Optional[MatrixIn] = None,
    ):
        self.data = data
        self.metric = resolve_metric(metric)
        n = len(data)
        self._rows: List[np.ndarray] = [
            np.full(n - i - 1, np.nan, dtype=np.float64) for i in range(n)
        ]
        self.evaluations = 0
        if matrix is not None:
            self._load(matrix)

    def __len__(self) -> int:
        return len(self._rows)

    def _load(self, matrix: MatrixIn) -> None:
        n = len(self._rows)
        if isinstance(matrix, np.ndarray) and matrix.ndim == 2:
            if matrix.shape != (n, n):
                raise ValueError(
                    f"distance matrix must have shape ({n}, {n}), got {matrix.shape}"
                )
            for i in range(n):
                self._rows[i][:] = matrix[i, i + 1:]
            return
        if len(matrix) != n:
            raise ValueError(
                f"upper-triangular matrix must have {n} rows, got {len(matrix)}"
            )
        for i, row in enumerate(matrix):
            row = np.asarray(row, dtype=np.float64)
            if row.shape != (n - i - 1,):
                raise ValueError(
                    f"row {i} must have length {n - i - 1}, got {row.shape}"
                )
            self._rows[i][:] = row

    def distance(self, i: int, j: int) -> float:
        """Distance between points ``i`` and ``j``, evaluating the metric at most once."""
        if i == j:
            return 0.0
        first, second = (i, j) if i < j else (j, i)
        row = self._rows[first]
        value = row[second - first - 1]
        if value != value:  # NaN: not computed yet
            value = float(self.metric(self.data[first], self.data[second]))
            self.evaluations += 1
            row[second - first - 1] = value
        return float(value)

    def is_cached(self, i: int, j: int) -> bool:
        if i == j:
            return True
        first, second = (i, j) if i < j else (j, i)
        return not np.isnan(self._rows[first][second - first - 1])

    @property
    def stored_pairs(self) -> int:
        return int(sum(np.count_nonzero(~np.isnan(row)) for row in self._rows))

    def fill(self) -> "PairwiseDistanceCache":
        """Compute every missing pair."""
        n = len(self._rows)
        for i in range(n):
            for j in range(i + 1, n):
                self.distance(i, j)
        return self

    def upper_triangular(self) -> List[np.ndarray]:
        """Copy of the row layout, with ``NaN`` where nothing was computed."""
        return [row.copy() for row in self._rows]
