"""
Algorithm Core Library - hubness-proportional clustering.

Lazy pairwise distances, k-occurrence (hubness) profiles, annealed hub
selection and the GHPC / GHPKM / LHPC clustering engine.
"""

from .errors import (
    ClusteringError,
    InvalidConfigurationError,
    EmptyClusterError,
    UnableToFinishError,
)
from .distance_cache import (
    PairwiseDistanceCache,
    euclidean_distance,
    manhattan_distance,
    cosine_distance,
    resolve_metric,
)
from .hubness import (
    HubnessProfile,
    NeighborGraphService,
    SklearnNeighborGraph,
    build_hubness_profile,
)
from .selection import (
    AnnealedHubSelector,
    ConstantSchedule,
    LinearSchedule,
    SelectionPolicy,
)
from .convergence import ConvergenceMonitor, StopReason
from .local_neighbors import LocalNeighborRecompute
from .seeding import plus_plus_seed
from .clustering import (
    GHPC,
    GHPKM,
    LHPC,
    ClusteringResult,
    HubRepresentation,
    HubnessProportionalClusterer,
    LoopState,
    ghpc,
    ghpkm,
    lhpc,
)

__all__ = [
    # Errors
    "ClusteringError",
    "InvalidConfigurationError",
    "EmptyClusterError",
    "UnableToFinishError",
    # Distances
    "PairwiseDistanceCache",
    "euclidean_distance",
    "manhattan_distance",
    "cosine_distance",
    "resolve_metric",
    # Hubness
    "HubnessProfile",
    "NeighborGraphService",
    "SklearnNeighborGraph",
    "build_hubness_profile",
    "LocalNeighborRecompute",
    # Hub selection and convergence
    "AnnealedHubSelector",
    "ConstantSchedule",
    "LinearSchedule",
    "SelectionPolicy",
    "ConvergenceMonitor",
    "StopReason",
    "plus_plus_seed",
    # Clustering
    "GHPC",
    "GHPKM",
    "LHPC",
    "ClusteringResult",
    "HubRepresentation",
    "HubnessProportionalClusterer",
    "LoopState",
    "ghpc",
    "ghpkm",
    "lhpc",
]
