"""
Initial hub seeding.

A seeder has the signature ``seeder(data, num_clusters, distance, rng)`` and
returns ``num_clusters`` distinct point indices. ``distance(i, j)`` is the
run's cached pairwise distance, so seeding fills the same cache the loop
reads later.
"""

from __future__ import annotations

from typing import Callable
import numpy as np

from .errors import InvalidConfigurationError

Array2D = np.ndarray
PairDistance = Callable[[int, int], float]
Seeder = Callable[[Array2D, int, PairDistance, np.random.Generator], np.ndarray]


def plus_plus_seed(
    data: Array2D,
    num_clusters: int,
    distance: PairDistance,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    K-means++ seeding over point indices.

    The first seed is uniform; each next seed is drawn with probability
    proportional to its squared distance to the nearest seed chosen so far.
    Seeds are never repeated: chosen points get zero weight, and when every
    remaining weight is zero (duplicate points) the next seed is uniform over
    the points not chosen yet.

    Args:
        data: (n, d) points
        num_clusters: Number of seeds
        distance: Pairwise distance by index
        rng: NumPy random generator

    Returns:
        1-D integer array of ``num_clusters`` distinct indices
    """
    n = len(data)
    if num_clusters < 1 or num_clusters > n:
        raise InvalidConfigurationError(
            f"cannot seed {num_clusters} clusters from {n} points"
        )

    chosen = np.zeros(n, dtype=bool)
    seeds = [int(rng.integers(0, n))]
    chosen[seeds[0]] = True
    min_sq = np.full(n, np.inf)

    for _ in range(num_clusters - 1):
        last = seeds[-1]
        for i in range(n):
            if chosen[i]:
                min_sq[i] = 0.0
                continue
            d = distance(i, last)
            if d * d < min_sq[i]:
                min_sq[i] = d * d

        total = min_sq.sum()
        if total == 0.0 or not np.isfinite(total):
            remaining = np.flatnonzero(~chosen)
            nxt = int(rng.choice(remaining))
        else:
            nxt = int(rng.choice(n, p=min_sq / total))
        seeds.append(nxt)
        chosen[nxt] = True

    return np.array(seeds, dtype=int)
