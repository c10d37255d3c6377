"""
Annealed hub selection.

Each iteration, every cluster picks its representative with one of two
policies. The deterministic policy takes the member with the highest
occurrence frequency. The stochastic policy samples a member with probability
proportional to its squared frequency. A schedule maps the iteration index to
the probability of the deterministic policy, so early iterations explore and
later ones settle on the strongest hubs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence, Union
import numpy as np

SelectionSchedule = Callable[[int], float]
RandomState = Union[int, np.random.Generator, None]


def as_generator(random_state: RandomState) -> np.random.Generator:
    """Seed, generator or None -> ``numpy.random.Generator``."""
    if isinstance(random_state, np.random.Generator):
        return random_state
    return np.random.default_rng(random_state)


@dataclass(frozen=True)
class LinearSchedule:
    """
    Probability ``iteration / probabilistic_iterations``, reaching 1.0 at
    ``probabilistic_iterations`` and staying there.
    """

    probabilistic_iterations: int = 20

    def __post_init__(self):
        if self.probabilistic_iterations < 0:
            raise ValueError(
                f"probabilistic_iterations must be >= 0, got {self.probabilistic_iterations}"
            )

    def __call__(self, iteration: int) -> float:
        if iteration >= self.probabilistic_iterations:
            return 1.0
        return iteration / self.probabilistic_iterations


@dataclass(frozen=True)
class ConstantSchedule:
    """Fixed probability. 0.0 is always stochastic, 1.0 always deterministic."""

    probability: float

    def __post_init__(self):
        if not 0.0 <= self.probability <= 1.0:
            raise ValueError(f"probability must be in [0, 1], got {self.probability}")

    def __call__(self, iteration: int) -> float:
        return self.probability


class SelectionPolicy(str, Enum):
    DETERMINISTIC = "deterministic"
    STOCHASTIC = "stochastic"


def find_cumulative_index(cumulative: np.ndarray, value: float) -> int:
    """
    Smallest index whose cumulative value is ``>= value``.

    Iterative binary search over a non-decreasing array. Returns
    ``len(cumulative)`` if no entry reaches ``value``.
    """
    low, high = 0, len(cumulative)
    while low < high:
        middle = (low + high) // 2
        if cumulative[middle] < value:
            low = middle + 1
        else:
            high = middle
    return low


class AnnealedHubSelector:
    """
    Picks one hub per cluster per iteration.

    Args:
        schedule: Iteration -> probability of the deterministic policy
        rng: Seed or generator. All random draws go through it, so two
            selectors built from the same seed make the same choices.
    """

    def __init__(self, schedule: SelectionSchedule, rng: RandomState = None):
        self.schedule = schedule
        self.rng = as_generator(rng)

    def choose_policy(self, iteration: int) -> SelectionPolicy:
        if self.rng.random() < self.schedule(iteration):
            return SelectionPolicy.DETERMINISTIC
        return SelectionPolicy.STOCHASTIC

    def select(
        self,
        members: Sequence[int],
        frequencies: Sequence[int],
        iteration: int,
    ) -> int:
        """
        Choose the hub of one cluster.

        Args:
            members: Point indices of the cluster, in cluster order
            frequencies: Occurrence frequency of each member, aligned with
                ``members``
            iteration: Current iteration index (drives the schedule)

        Returns:
            The point index of the chosen hub
        """
        if len(members) == 0:
            raise ValueError("cannot select a hub from an empty cluster")
        if len(members) == 1:
            return int(members[0])
        if self.choose_policy(iteration) is SelectionPolicy.DETERMINISTIC:
            return self.select_deterministic(members, frequencies)
        return self.select_stochastic(members, frequencies)

    @staticmethod
    def select_deterministic(members: Sequence[int], frequencies: Sequence[int]) -> int:
        """Member with the strictly largest frequency; the first one wins ties."""
        # np.argmax returns the first maximum
        return int(members[int(np.argmax(np.asarray(frequencies)))])

    def select_stochastic(self, members: Sequence[int], frequencies: Sequence[int]) -> int:
        """Sample a member with probability proportional to its squared frequency."""
        freqs = np.asarray(frequencies, dtype=np.float64)
        cumulative = np.concatenate(([0.0], np.cumsum(freqs * freqs)))
        total = cumulative[-1]
        if total <= 0.0:
            # Every member has frequency zero: uniform choice
            return int(members[int(self.rng.integers(0, len(members)))])
        # (0, total], so a zero-weight prefix can never match
        target = (1.0 - self.rng.random()) * total
        position = find_cumulative_index(cumulative, target)
        return int(members[position - 1])
