"""
Within-cluster k-nearest-neighbor lists for the local hubness variant.

Neighbor lists are restricted to the members of one cluster and rebuilt
every iteration. Each list is a fixed-size candidate array kept sorted by
insertion as pair distances arrive, so no full sort is needed.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple
import numpy as np

from .distance_cache import PairwiseDistanceCache


def insert_neighbor(
    neighbors: List[int],
    distances: List[float],
    length: int,
    candidate: int,
    distance: float,
) -> int:
    """
    Insert ``candidate`` into a sorted fixed-size neighbor list.

    ``neighbors`` and ``distances`` have capacity k; only the first ``length``
    entries are valid and they are sorted by ascending distance. Equal
    distances keep the earlier entry first. A full list drops its farthest
    entry when a closer candidate arrives.

    Returns:
        The new number of valid entries
    """
    capacity = len(neighbors)
    if length == capacity:
        if distance >= distances[capacity - 1]:
            return length
        position = capacity - 1
    else:
        position = length
        length += 1
    while position > 0 and distance < distances[position - 1]:
        distances[position] = distances[position - 1]
        neighbors[position] = neighbors[position - 1]
        position -= 1
    distances[position] = distance
    neighbors[position] = candidate
    return length


class LocalNeighborRecompute:
    """
    Cluster-local kNN lists and occurrence frequencies.

    Args:
        k: Neighborhood size
        cache: Shared distance cache of the run; every pair visited here is
            stored in it
    """

    def __init__(self, k: int, cache: PairwiseDistanceCache):
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        self.k = k
        self.cache = cache

    def applies_to(self, cluster_size: int) -> bool:
        """Whether the cluster is large enough for a local neighbor graph."""
        return cluster_size >= self.k + 2

    def neighbor_lists(self, members: Sequence[int]) -> Tuple[np.ndarray, np.ndarray]:
        """
        Top-k neighbors of every member among the other members.

        Args:
            members: Point indices of one cluster (at least ``k + 1`` of them)

        Returns:
            Tuple of:
            - neighbors: (m, k) positions into ``members``, nearest first
            - distances: (m, k) matching distances
        """
        m, k = len(members), self.k
        if m <= k:
            raise ValueError(f"need more than k={k} members, got {m}")
        neighbors = [[-1] * k for _ in range(m)]
        distances = [[0.0] * k for _ in range(m)]
        lengths = [0] * m
        for j in range(m):
            for l in range(j + 1, m):
                d = self.cache.distance(members[j], members[l])
                lengths[j] = insert_neighbor(neighbors[j], distances[j], lengths[j], l, d)
                lengths[l] = insert_neighbor(neighbors[l], distances[l], lengths[l], j, d)
        return (
            np.asarray(neighbors, dtype=np.int64),
            np.asarray(distances, dtype=np.float64),
        )

    def occurrence_frequencies(self, members: Sequence[int]) -> np.ndarray:
        """
        How often each member occurs in the other members' local kNN lists.

        The result is aligned with ``members`` and sums to ``len(members) * k``.
        """
        neighbors, _ = self.neighbor_lists(members)
        return np.bincount(neighbors.ravel(), minlength=len(members))
