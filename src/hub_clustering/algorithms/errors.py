"""
Error taxonomy for the clustering engine.

``EmptyClusterError`` is not raised inside the loop: the assignment step
returns it as a typed result and the retry loop in ``clustering`` consumes it.
Only ``InvalidConfigurationError`` and ``UnableToFinishError`` ever reach
the caller.
"""

from __future__ import annotations

from typing import Optional


class ClusteringError(Exception):
    """Base class for all clustering errors."""


class InvalidConfigurationError(ClusteringError, ValueError):
    """Bad input or parameters. Raised immediately, never retried."""


class EmptyClusterError(ClusteringError):
    """A cluster lost all of its members during reassignment."""

    def __init__(self, cluster_index: int, iteration: int, attempt: Optional[int] = None):
        self.cluster_index = cluster_index
        self.iteration = iteration
        self.attempt = attempt
        super().__init__(
            f"Cluster {cluster_index} became empty at iteration {iteration}"
        )


class UnableToFinishError(ClusteringError, RuntimeError):
    """Every attempt ended in an empty cluster."""

    def __init__(self, attempts: int, last_error: Optional[EmptyClusterError] = None):
        self.attempts = attempts
        self.last_error = last_error
        message = f"Clustering did not finish after {attempts} attempt(s)"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)
