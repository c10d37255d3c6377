"""
Hubness-proportional clustering.

One engine drives all three variants:

- ``GHPC``: Global Hubness-Proportional Clustering. Cluster centers are real
  data points (hubs), chosen from a global occurrence-frequency profile.
- ``GHPKM``: Global Hubness-Proportional K-Means. The stochastic branch
  samples a hub like GHPC, the deterministic branch uses the cluster mean.
- ``LHPC``: Local Hubness-Proportional Clustering. Occurrence frequencies are
  recomputed inside each cluster on every iteration; clusters too small for a
  local neighbor graph fall back to their mean.

The variants differ only in how a cluster's representative is built (hub
representation) and where the frequencies come from (hubness source).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
import numpy as np
from tenacity import RetryError, retry, retry_if_result, stop_after_attempt

from ..config import ClusteringConfig, config as default_config
from ..utils.logging_config import get_logger
from .convergence import ConvergenceMonitor, StopReason
from .distance_cache import Metric, MatrixIn, PairwiseDistanceCache, resolve_metric
from .errors import EmptyClusterError, InvalidConfigurationError, UnableToFinishError
from .hubness import (
    HubnessProfile,
    NeighborGraphService,
    SklearnNeighborGraph,
    as_hubness_profile,
    build_hubness_profile,
)
from .local_neighbors import LocalNeighborRecompute
from .seeding import Seeder, plus_plus_seed
from .selection import (
    AnnealedHubSelector,
    LinearSchedule,
    RandomState,
    SelectionPolicy,
    SelectionSchedule,
    as_generator,
)

logger = get_logger(__name__)

Array2D = np.ndarray
NO_HUB = -1


class HubRepresentation(str, Enum):
    """What the deterministic policy produces for a cluster."""

    HUB = "hub"  # member with the highest occurrence frequency
    MEAN = "mean"  # arithmetic mean of the members


@dataclass(frozen=True)
class ClusteringResult:
    """
    Result of a single clustering run.

    ``labels``, ``objective``, ``best_hub_indexes`` and ``best_centers`` all
    describe the lowest-error snapshot. ``hub_indexes`` and ``centers`` are
    the representatives after the last iteration; they are what
    ``assign_points_to_model_clusters`` uses.
    """

    labels: np.ndarray
    objective: float
    n_iter: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)
    hub_indexes: Optional[np.ndarray] = None
    centers: Optional[np.ndarray] = None
    attempts: int = 1
    stop_reason: Optional[StopReason] = None
    error_history: List[float] = field(default_factory=list)
    best_hub_indexes: Optional[np.ndarray] = None
    best_centers: Optional[np.ndarray] = None
    hub_history: Optional[List[np.ndarray]] = None


@dataclass
class AssignmentPass:
    """Outcome of one successful assignment pass."""

    associations: np.ndarray
    reassigned: bool


@dataclass
class LoopState:
    """Everything one clustering attempt carries from step to step."""

    iteration: int
    hub_indexes: np.ndarray
    centers: np.ndarray
    associations: np.ndarray
    seed_indexes: np.ndarray
    reassigned: bool = True
    centers_changed: bool = True
    error_previous: float = math.inf
    error_current: float = math.inf
    best_error: float = math.inf
    best_associations: Optional[np.ndarray] = None
    best_hub_indexes: Optional[np.ndarray] = None
    best_centers: Optional[np.ndarray] = None
    best_iteration: int = 0
    stop_reason: Optional[StopReason] = None
    error_history: List[float] = field(default_factory=list)
    hub_history: Optional[List[np.ndarray]] = None

    def record_error(self, error: float) -> None:
        """Shift the error window and keep a copy of the best snapshot."""
        self.error_previous, self.error_current = self.error_current, error
        self.error_history.append(error)
        if error < self.best_error or self.best_associations is None:
            self.best_error = error
            self.best_associations = self.associations.copy()
            self.best_hub_indexes = self.hub_indexes.copy()
            self.best_centers = self.centers.copy()
            self.best_iteration = self.iteration

    def record_hubs(self) -> None:
        if self.hub_history is not None:
            self.hub_history.append(self.hub_indexes.copy())


class GlobalHubnessSource:
    """Frequencies looked up in one precomputed profile."""

    def __init__(self, profile: HubnessProfile):
        self.profile = profile

    def frequencies(self, members: np.ndarray) -> Optional[np.ndarray]:
        return self.profile.for_members(members)


class LocalHubnessSource:
    """Frequencies recomputed among the members of each cluster."""

    def __init__(self, recompute: LocalNeighborRecompute):
        self.recompute = recompute

    def frequencies(self, members: np.ndarray) -> Optional[np.ndarray]:
        # None: too few members for a local neighbor graph, use the mean
        if not self.recompute.applies_to(len(members)):
            return None
        return self.recompute.occurrence_frequencies(members)


def _is_empty_cluster(outcome: Any) -> bool:
    return isinstance(outcome, EmptyClusterError)


class HubnessProportionalClusterer:
    """
    Annealed hub-selection clustering engine.

    Subclasses choose the hub representation and the hubness source; the
    assign/update loop, convergence handling and retries live here.

    Args:
        data: (n, d) data points (converted to float64; never modified)
        num_clusters: Number of clusters
        config: ClusteringConfig (default: variant defaults + environment)
        schedule: Iteration -> probability of the deterministic policy
            (default: ``LinearSchedule(config.probabilistic_iterations)``)
        seed: Random seed or ``numpy.random.Generator`` for seeding and
            stochastic hub selection
        metric: Metric name or callable; overrides ``config.metric``
        distance_matrix: Optional precomputed distances, (n, n) or
            upper-triangular rows
        seeder: Seeding service (default: ``plus_plus_seed``)
        stop_requested: Optional callable, consulted at every iteration
            boundary with the current LoopState; returning True ends the run
            with the best snapshot so far
        **overrides: Any ClusteringConfig field (``k``, ``max_iterations``...)
    """

    variant = "global"
    representation = HubRepresentation.HUB

    def __init__(
        self,
        data: Array2D,
        num_clusters: int,
        *,
        config: Optional[ClusteringConfig] = None,
        schedule: Optional[SelectionSchedule] = None,
        seed: RandomState = None,
        metric: Union[str, Metric, None] = None,
        distance_matrix: Optional[MatrixIn] = None,
        seeder: Seeder = plus_plus_seed,
        stop_requested: Optional[Callable[[LoopState], bool]] = None,
        **overrides: Any,
    ):
        base = config if config is not None else default_config.get_clustering_config(self.variant)
        self.config = base.with_overrides(**overrides)
        self.data = self._as_data(data)
        self.num_clusters = num_clusters
        metric = metric if metric is not None else self.config.metric
        self.metric = resolve_metric(metric)
        # name or callable, as handed to a default neighbor-graph service
        self.metric_spec = metric.lower() if isinstance(metric, str) else metric
        self.schedule = schedule if schedule is not None else LinearSchedule(
            self.config.probabilistic_iterations
        )
        self.monitor = ConvergenceMonitor(
            threshold=self.config.error_threshold,
            min_iterations=self.config.probabilistic_iterations,
            max_iterations=self.config.max_iterations,
        )
        self.rng = as_generator(seed)
        self.selector = AnnealedHubSelector(self.schedule, self.rng)
        self.seeder = seeder
        self.stop_requested = stop_requested
        self._distance_matrix = distance_matrix
        self.cache: Optional[PairwiseDistanceCache] = None
        self.result: Optional[ClusteringResult] = None

    @staticmethod
    def _as_data(data: Array2D) -> np.ndarray:
        X = np.asarray(data, dtype=np.float64)
        if X.ndim != 2:
            raise InvalidConfigurationError(
                f"data must be a 2-D array of shape (n_samples, n_features), got {X.shape}"
            )
        return X

    @property
    def k(self) -> int:
        return self.config.k

    def _validate(self) -> None:
        n = len(self.data)
        if n == 0:
            raise InvalidConfigurationError("No data provided for clustering.")
        if isinstance(self.num_clusters, bool) or not isinstance(self.num_clusters, (int, np.integer)):
            raise InvalidConfigurationError(
                f"num_clusters must be an integer, got {self.num_clusters!r}"
            )
        if self.num_clusters <= 0:
            raise InvalidConfigurationError(
                f"num_clusters must be >= 1, got {self.num_clusters}"
            )
        if self.num_clusters > n:
            raise InvalidConfigurationError(
                f"num_clusters ({self.num_clusters}) cannot exceed number of samples ({n})"
            )

    def _make_hubness_source(self, cache: PairwiseDistanceCache):
        raise NotImplementedError

    def _service_distances(self) -> Optional[np.ndarray]:
        """Distances supplied by a neighbor-graph service; None means compute lazily."""
        return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def cluster(self) -> ClusteringResult:
        """
        Run the clustering to convergence or the iteration cap.

        Empty clusters restart the attempt from fresh seeds, up to
        ``config.max_retries`` times.

        Returns:
            ClusteringResult holding the lowest-error associations seen

        Raises:
            InvalidConfigurationError: On unusable input, before any work
            UnableToFinishError: If every attempt produced an empty cluster
        """
        self._validate()
        self.result = None
        n, K = len(self.data), int(self.num_clusters)
        if K == 1 or K == n:
            self.result = self._trivial_result(K)
            return self.result

        if self.cache is None:
            matrix = self._distance_matrix
            if matrix is None:
                matrix = self._service_distances()
            self.cache = PairwiseDistanceCache(self.data, self.metric, matrix)

        source = self._make_hubness_source(self.cache)
        logger.info(
            "Running %s: n=%d, num_clusters=%d, k=%d, max_iterations=%d",
            type(self).__name__, n, K, self.k, self.config.max_iterations,
        )

        attempts = [0]

        def _log_retry(retry_state) -> None:
            outcome = retry_state.outcome.result()
            logger.warning(
                "%s attempt %d failed: %s",
                type(self).__name__, retry_state.attempt_number, outcome,
            )

        # Define retry strategy
        retry_decorator = retry(
            stop=stop_after_attempt(self.config.max_retries + 1),
            retry=retry_if_result(_is_empty_cluster),
            after=_log_retry,
        )

        @retry_decorator
        def _attempt():
            attempts[0] += 1
            return self._run_attempt(source, attempts[0])

        try:
            state = _attempt()
        except RetryError as e:
            last = e.last_attempt.result()
            raise UnableToFinishError(attempts[0], last) from last

        self.result = self._build_result(state, attempts[0])
        logger.info(
            "%s finished after %d iteration(s) (%s), best error %.6g at iteration %d",
            type(self).__name__, state.iteration, state.stop_reason.value,
            state.best_error, state.best_iteration,
        )
        return self.result

    def get_cluster_associations(self) -> Optional[np.ndarray]:
        """Best associations of the last successful run, or None."""
        if self.result is None:
            return None
        return self.result.labels

    def get_minimizing_clusters(self) -> List[np.ndarray]:
        """Member indices of every cluster in the best configuration."""
        labels = self._require_result().labels
        return [np.flatnonzero(labels == c) for c in range(int(self.num_clusters))]

    def assign_points_to_model_clusters(self, points: Array2D) -> np.ndarray:
        """
        Assign new points to the nearest final cluster center.

        The model is not retrained.

        Args:
            points: (m, d) points, or a single (d,) point

        Returns:
            (m,) cluster indices
        """
        centers = self._require_result().centers
        points = np.asarray(points, dtype=np.float64)
        if points.size == 0:
            return np.zeros(0, dtype=int)
        points = np.atleast_2d(points)
        if points.shape[1] != self.data.shape[1]:
            raise ValueError(
                f"points have {points.shape[1]} features, model has {self.data.shape[1]}"
            )
        labels = np.empty(len(points), dtype=int)
        for i, point in enumerate(points):
            dists = [self.metric(point, center) for center in centers]
            labels[i] = int(np.argmin(dists))
        return labels

    def _require_result(self) -> ClusteringResult:
        if self.result is None:
            raise RuntimeError("No clustering model yet, call cluster() first")
        return self.result

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _run_attempt(self, source, attempt: int) -> Union[LoopState, EmptyClusterError]:
        """One seeded run of the assign/update loop."""
        n, K = len(self.data), int(self.num_clusters)
        seeds = np.asarray(self.seeder(self.data, K, self.cache.distance, self.rng), dtype=int)
        if seeds.shape != (K,) or len(np.unique(seeds)) != K:
            raise InvalidConfigurationError(
                f"seeder must return {K} distinct indices, got {seeds.tolist()}"
            )

        state = LoopState(
            iteration=0,
            hub_indexes=seeds.copy(),
            centers=self.data[seeds].copy(),
            associations=np.full(n, -1, dtype=int),
            seed_indexes=seeds.copy(),
            hub_history=[] if self.config.keep_history else None,
        )
        state.record_hubs()

        outcome = self._assign(state)
        if isinstance(outcome, EmptyClusterError):
            outcome.attempt = attempt
            return outcome
        state.associations = outcome.associations
        state.record_error(self._squared_error(state))

        while True:
            if self.stop_requested is not None and self.stop_requested(state):
                state.stop_reason = StopReason.CANCELLED
                logger.info("%s cancelled at iteration %d", type(self).__name__, state.iteration)
                break
            state.iteration += 1
            self._update_hubs(state, source)
            state.record_hubs()

            outcome = self._assign(state)
            if isinstance(outcome, EmptyClusterError):
                outcome.attempt = attempt
                return outcome
            state.associations = outcome.associations
            state.reassigned = outcome.reassigned
            state.record_error(self._squared_error(state))
            logger.debug(
                "Iteration %d: error=%.6g reassigned=%s",
                state.iteration, state.error_current, state.reassigned,
            )

            # Moved hubs count as change: with a fixed partition the stochastic
            # phase still runs until the schedule settles on the strongest hubs
            reason = self.monitor.check(
                state.iteration,
                state.error_previous,
                state.error_current,
                state.reassigned or state.centers_changed,
            )
            if reason is not None:
                state.stop_reason = reason
                break
        return state

    def _assign(self, state: LoopState) -> Union[AssignmentPass, EmptyClusterError]:
        """Assign every point to its nearest center; ties go to the lower cluster index."""
        n, K = len(self.data), int(self.num_clusters)
        associations = np.empty(n, dtype=int)
        hub_indexes = state.hub_indexes
        for i in range(n):
            closest = -1
            smallest = math.inf
            for c in range(K):
                hub = hub_indexes[c]
                if hub >= 0:
                    if hub == i:
                        closest = c
                        break
                    d = self.cache.distance(i, int(hub))
                else:
                    d = self.metric(self.data[i], state.centers[c])
                if d < smallest:
                    smallest = d
                    closest = c
            associations[i] = closest

        counts = np.bincount(associations, minlength=K)
        empty = np.flatnonzero(counts == 0)
        if len(empty):
            return EmptyClusterError(int(empty[0]), state.iteration)
        reassigned = bool(np.any(associations != state.associations))
        return AssignmentPass(associations, reassigned)

    def _update_hubs(self, state: LoopState, source) -> None:
        """Pick a new representative for every cluster."""
        previous_hubs = state.hub_indexes.copy()
        previous_centers = state.centers.copy()
        for c in range(int(self.num_clusters)):
            members = np.flatnonzero(state.associations == c)
            if len(members) == 1:
                hub = int(members[0])
                state.hub_indexes[c] = hub
                state.centers[c] = self.data[hub]
                continue
            hub, center = self._select_center(members, state.iteration, source)
            state.hub_indexes[c] = hub
            state.centers[c] = center
        state.centers_changed = not (
            np.array_equal(previous_hubs, state.hub_indexes)
            and np.array_equal(previous_centers, state.centers)
        )

    def _select_center(self, members: np.ndarray, iteration: int, source):
        """(hub index or NO_HUB, center vector) for a cluster of two or more members."""
        frequencies = source.frequencies(members)
        if frequencies is None:
            return NO_HUB, self.data[members].mean(axis=0)
        if self.representation is HubRepresentation.MEAN:
            if self.selector.choose_policy(iteration) is SelectionPolicy.DETERMINISTIC:
                return NO_HUB, self.data[members].mean(axis=0)
            hub = self.selector.select_stochastic(members, frequencies)
        else:
            hub = self.selector.select(members, frequencies, iteration)
        return hub, self.data[hub]

    def _squared_error(self, state: LoopState) -> float:
        """Sum of squared distances from each point to its cluster's center."""
        error = 0.0
        for i, c in enumerate(state.associations):
            hub = state.hub_indexes[c]
            if hub >= 0:
                d = self.cache.distance(i, int(hub))
            else:
                d = self.metric(self.data[i], state.centers[c])
            error += d * d
        return error

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _build_result(self, state: LoopState, attempts: int) -> ClusteringResult:
        return ClusteringResult(
            labels=state.best_associations.copy(),
            objective=float(state.best_error),
            n_iter=state.iteration,
            metadata={
                "variant": type(self).__name__,
                "k": self.k,
                "seed_indexes": state.seed_indexes.copy(),
                "best_iteration": state.best_iteration,
                "final_error": float(state.error_current),
                "distance_evaluations": self.cache.evaluations,
            },
            hub_indexes=state.hub_indexes.copy(),
            centers=state.centers.copy(),
            attempts=attempts,
            stop_reason=state.stop_reason,
            error_history=list(state.error_history),
            hub_history=state.hub_history,
            best_hub_indexes=state.best_hub_indexes.copy(),
            best_centers=state.best_centers.copy(),
        )

    def _trivial_result(self, K: int) -> ClusteringResult:
        """One cluster for everything, or one cluster per point."""
        n = len(self.data)
        if K == 1:
            labels = np.zeros(n, dtype=int)
            hub_indexes = np.array([NO_HUB])
            centers = self.data.mean(axis=0, keepdims=True)
            objective = float(sum(self.metric(x, centers[0]) ** 2 for x in self.data))
        else:
            labels = np.arange(n)
            hub_indexes = np.arange(n)
            centers = self.data.copy()
            objective = 0.0
        return ClusteringResult(
            labels=labels,
            objective=objective,
            n_iter=0,
            metadata={"variant": type(self).__name__, "k": self.k, "trivial": True},
            hub_indexes=hub_indexes,
            centers=centers,
            attempts=0,
            stop_reason=StopReason.TRIVIAL,
            error_history=[objective],
            best_hub_indexes=hub_indexes.copy(),
            best_centers=centers.copy(),
        )


class _GlobalHubnessMixin:
    """Global profile: supplied by the caller or built by a neighbor-graph service."""

    def __init__(
        self,
        data: Array2D,
        num_clusters: int,
        k: Optional[int] = None,
        *,
        hubness: Union[HubnessProfile, np.ndarray, Sequence[int], None] = None,
        neighbor_graph: Optional[NeighborGraphService] = None,
        **kwargs: Any,
    ):
        super().__init__(data, num_clusters, k=k, **kwargs)
        self.neighbor_graph = neighbor_graph
        self.hubness_profile: Optional[HubnessProfile] = None
        if hubness is not None:
            self.hubness_profile = as_hubness_profile(hubness, len(self.data), k=self.k)

    def _graph_service(self) -> Optional[NeighborGraphService]:
        """The caller's service, or a scikit-learn graph using the clustering metric."""
        if self.neighbor_graph is not None:
            return self.neighbor_graph
        if self.hubness_profile is None:
            self.neighbor_graph = SklearnNeighborGraph(metric=self.metric_spec)
        return self.neighbor_graph

    def _service_distances(self) -> Optional[np.ndarray]:
        service = self._graph_service()
        distance_matrix = getattr(service, "distance_matrix", None)
        if distance_matrix is None:
            return None
        return np.asarray(distance_matrix(self.data), dtype=np.float64)

    def _make_hubness_source(self, cache: PairwiseDistanceCache) -> GlobalHubnessSource:
        if self.hubness_profile is None:
            self.hubness_profile = build_hubness_profile(self.data, self.k, self._graph_service())
        return GlobalHubnessSource(self.hubness_profile)


class GHPC(_GlobalHubnessMixin, HubnessProportionalClusterer):
    """
    Global Hubness-Proportional Clustering.

    Cluster centers are always data points. Early iterations sample hubs with
    probability proportional to squared occurrence frequency; as the schedule
    anneals, the most frequent member is taken deterministically.

    Example:
        >>> model = GHPC(X, num_clusters=3, k=10, seed=0)
        >>> result = model.cluster()
        >>> result.labels, result.hub_indexes
    """

    variant = "global"
    representation = HubRepresentation.HUB


class GHPKM(_GlobalHubnessMixin, HubnessProportionalClusterer):
    """
    Global Hubness-Proportional K-Means.

    The stochastic branch samples a hub from the global profile; the
    deterministic branch takes the arithmetic mean of the cluster, so once
    the schedule reaches 1.0 the loop is plain Lloyd's k-means.
    """

    variant = "global"
    representation = HubRepresentation.MEAN


class LHPC(HubnessProportionalClusterer):
    """
    Local Hubness-Proportional Clustering.

    No global neighbor graph: every iteration each cluster builds kNN lists
    among its own members and picks its hub from those local occurrence
    counts. Clusters with fewer than ``k + 2`` members use their mean.
    """

    variant = "local"
    representation = HubRepresentation.HUB

    def __init__(self, data: Array2D, num_clusters: int, k: Optional[int] = None, **kwargs: Any):
        super().__init__(data, num_clusters, k=k, **kwargs)

    def _make_hubness_source(self, cache: PairwiseDistanceCache) -> LocalHubnessSource:
        return LocalHubnessSource(LocalNeighborRecompute(self.k, cache))


# ------------------------------------------------------------------
# Functional interface
# ------------------------------------------------------------------

def _run(cls, X: Array2D, K: int, k: Optional[int], seed: RandomState, **kwargs: Any):
    model = cls(X, K, k=k, seed=seed, **kwargs)
    result = model.cluster()
    info = {
        "objective": result.objective,
        "n_iter": result.n_iter,
        "hub_indexes": result.hub_indexes,
        "centers": result.centers,
        "attempts": result.attempts,
        "stop_reason": result.stop_reason.value if result.stop_reason else None,
    }
    return result.labels.astype(int), info


def ghpc(X: Array2D, K: int, *, k: Optional[int] = None, seed: RandomState = 0, **kwargs: Any) -> tuple[np.ndarray, Dict[str, Any]]:
    """
    Global Hubness-Proportional Clustering in one call.

    Args:
        X: Input data of shape (n_samples, n_features)
        K: Number of clusters
        k: Neighborhood size for the occurrence frequencies
        seed: Random seed for seeding and hub selection
        **kwargs: Passed to ``GHPC`` (``hubness``, ``schedule``, ``max_iterations``...)

    Returns:
        Tuple of:
        - labels: Best cluster assignments of shape (n_samples,)
        - info: Dictionary with objective, n_iter, hub_indexes, centers,
          attempts and stop_reason
    """
    return _run(GHPC, X, K, k, seed, **kwargs)


def ghpkm(X: Array2D, K: int, *, k: Optional[int] = None, seed: RandomState = 0, **kwargs: Any) -> tuple[np.ndarray, Dict[str, Any]]:
    """Global Hubness-Proportional K-Means in one call. See ``ghpc`` for the arguments."""
    return _run(GHPKM, X, K, k, seed, **kwargs)


def lhpc(X: Array2D, K: int, *, k: Optional[int] = None, seed: RandomState = 0, **kwargs: Any) -> tuple[np.ndarray, Dict[str, Any]]:
    """Local Hubness-Proportional Clustering in one call. See ``ghpc`` for the arguments."""
    return _run(LHPC, X, K, k, seed, **kwargs)
