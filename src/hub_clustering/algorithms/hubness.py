"""
Neighbor occurrence frequencies (hubness profiles).

The clustering engine only reads occurrence counts; it never builds a global
kNN graph itself. Graphs come from a ``NeighborGraphService``. The default
service delegates the neighbor search to scikit-learn.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Union, runtime_checkable
import numpy as np
from sklearn.metrics import pairwise_distances
from sklearn.neighbors import NearestNeighbors

from .errors import InvalidConfigurationError

Array2D = np.ndarray


@dataclass(frozen=True, eq=False)
class HubnessProfile:
    """Read-only occurrence frequencies aligned with point indices."""

    frequencies: np.ndarray
    k: Optional[int] = None
    source: str = "external"

    def __post_init__(self):
        freqs = np.asarray(self.frequencies)
        if freqs.ndim != 1:
            raise InvalidConfigurationError(
                f"frequencies must be 1-D, got shape {freqs.shape}"
            )
        if freqs.size and not np.issubdtype(freqs.dtype, np.integer):
            if not np.all(np.equal(np.mod(freqs, 1), 0)):
                raise InvalidConfigurationError("frequencies must be integers")
        freqs = freqs.astype(np.int64, copy=True)
        if np.any(freqs < 0):
            raise InvalidConfigurationError("frequencies must be non-negative")
        freqs.setflags(write=False)
        object.__setattr__(self, "frequencies", freqs)

    def __len__(self) -> int:
        return self.frequencies.size

    def __getitem__(self, index: int) -> int:
        return self.frequency(index)

    def frequency(self, index: int) -> int:
        """Occurrence count of one point, 0 for points the profile does not cover."""
        if 0 <= index < self.frequencies.size:
            return int(self.frequencies[index])
        return 0

    def for_members(self, members: Sequence[int]) -> np.ndarray:
        """Occurrence counts of ``members`` in member order."""
        members = np.asarray(members, dtype=np.int64)
        out = np.zeros(len(members), dtype=np.int64)
        inside = (members >= 0) & (members < self.frequencies.size)
        out[inside] = self.frequencies[members[inside]]
        return out

    @property
    def total(self) -> int:
        return int(self.frequencies.sum())

    def is_complete(self) -> bool:
        """True if the counts add up to ``n * k`` as a full kNN graph would."""
        return self.k is not None and self.total == self.frequencies.size * self.k

    @classmethod
    def from_neighbor_indices(cls, neighbor_indices: Array2D, n_points: Optional[int] = None) -> "HubnessProfile":
        """
        Count how often each point appears in the rows of a kNN index matrix.

        Args:
            neighbor_indices: (n, k) integer array, row ``i`` listing the k
                nearest neighbors of point ``i``
            n_points: Number of points (default: number of rows)

        Returns:
            HubnessProfile with ``k`` taken from the matrix width
        """
        neighbor_indices = np.asarray(neighbor_indices, dtype=np.int64)
        if neighbor_indices.ndim != 2:
            raise InvalidConfigurationError(
                f"neighbor_indices must be 2-D, got shape {neighbor_indices.shape}"
            )
        n = neighbor_indices.shape[0] if n_points is None else n_points
        counts = np.bincount(neighbor_indices.ravel(), minlength=n)[:n]
        return cls(counts, k=neighbor_indices.shape[1], source="knn")

    @classmethod
    def supervised(
        cls,
        good_frequencies: np.ndarray,
        bad_frequencies: np.ndarray,
        weights: np.ndarray,
        k: Optional[int] = None,
    ) -> "HubnessProfile":
        """
        Class-aware hubness from good/bad occurrence counts and point weights.

        Scores ``(good + bad) * weight`` are rescaled before truncation to
        integers so that small scores do not all collapse to zero. The
        rescaling is monotone and does not change which point is the hub.
        """
        good = np.asarray(good_frequencies, dtype=np.float64)
        bad = np.asarray(bad_frequencies, dtype=np.float64)
        weights = np.asarray(weights, dtype=np.float64)
        if not (good.shape == bad.shape == weights.shape):
            raise InvalidConfigurationError(
                "good_frequencies, bad_frequencies and weights must have the same shape"
            )
        scores = (good + bad) * weights
        factor = 1.0
        if scores.size:
            mean = float(scores.mean())
            if mean <= 1 or float(scores.max()) < 50:
                factor = max(100.0, 1.0 / mean) if mean > 0 else 100.0
        return cls((scores * factor).astype(np.int64), k=k, source="supervised")


@runtime_checkable
class NeighborGraphService(Protocol):
    """
    Supplies occurrence frequencies for a dataset.

    A service may also define ``distance_matrix(data) -> (n, n) array``; the
    global clustering variants then load those distances instead of
    evaluating the metric pair by pair.
    """

    def occurrence_frequencies(self, data: Array2D, k: int) -> np.ndarray:
        ...


class SklearnNeighborGraph:
    """
    Neighbor-graph service backed by ``sklearn.neighbors.NearestNeighbors``.

    Args:
        metric: Any metric name scikit-learn accepts
        algorithm: NearestNeighbors search algorithm
        n_jobs: Parallel jobs for the neighbor search
    """

    def __init__(self, metric: str = "euclidean", algorithm: str = "brute", n_jobs: Optional[int] = None):
        self.metric = metric
        self.algorithm = algorithm
        self.n_jobs = n_jobs

    def neighbor_indices(self, data: Array2D, k: int) -> np.ndarray:
        """(n, k) indices of each point's k nearest neighbors, the point itself excluded."""
        n = len(data)
        if k < 1 or k >= n:
            raise InvalidConfigurationError(
                f"k must be in [1, {n - 1}] for {n} points, got {k}"
            )
        model = NearestNeighbors(
            n_neighbors=k, metric=self.metric, algorithm=self.algorithm, n_jobs=self.n_jobs
        )
        model.fit(data)
        # No query argument: scikit-learn leaves each point out of its own list
        _, indices = model.kneighbors()
        return indices

    def occurrence_frequencies(self, data: Array2D, k: int) -> np.ndarray:
        return HubnessProfile.from_neighbor_indices(
            self.neighbor_indices(data, k), n_points=len(data)
        ).frequencies

    def distance_matrix(self, data: Array2D) -> np.ndarray:
        return pairwise_distances(data, metric=self.metric, n_jobs=self.n_jobs)


def build_hubness_profile(
    data: Array2D,
    k: int,
    service: Optional[NeighborGraphService] = None,
) -> HubnessProfile:
    """
    Ask a neighbor-graph service for occurrence frequencies.

    Args:
        data: (n, d) points
        k: Neighborhood size
        service: Neighbor-graph service (default: ``SklearnNeighborGraph()``)

    Returns:
        HubnessProfile aligned with the rows of ``data``
    """
    service = service if service is not None else SklearnNeighborGraph()
    freqs = np.asarray(service.occurrence_frequencies(data, k))
    if freqs.shape != (len(data),):
        raise InvalidConfigurationError(
            f"neighbor-graph service returned {freqs.shape} frequencies for {len(data)} points"
        )
    return HubnessProfile(freqs, k=k, source=type(service).__name__)


def as_hubness_profile(
    hubness: Union[HubnessProfile, np.ndarray, Sequence[int]],
    n_points: int,
    k: Optional[int] = None,
) -> HubnessProfile:
    """Wrap caller-supplied frequencies and check they line up with the data."""
    profile = hubness if isinstance(hubness, HubnessProfile) else HubnessProfile(np.asarray(hubness), k=k)
    if len(profile) != n_points:
        raise InvalidConfigurationError(
            f"hubness profile covers {len(profile)} points, data has {n_points}"
        )
    return profile
