"""
Convergence checks for the assign/update loop.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..utils.logging_config import get_logger

logger = get_logger(__name__)

ERROR_THRESHOLD = 0.001
OVERFLOW_SENTINEL = sys.float_info.max


class ErrorChange(str, Enum):
    CONVERGED = "converged"
    SIGNIFICANT = "significant"
    DEGENERATE = "degenerate"


class StopReason(str, Enum):
    CONVERGED = "converged"
    NO_REASSIGNMENTS = "no_reassignments"
    MAX_ITERATIONS = "max_iterations"
    CANCELLED = "cancelled"
    TRIVIAL = "trivial"


def is_acceptable_error(value: float) -> bool:
    """Finite and below the overflow sentinel."""
    return math.isfinite(value) and abs(value) < OVERFLOW_SENTINEL


@dataclass(frozen=True)
class ConvergenceMonitor:
    """
    Relative squared-error convergence with iteration bounds.

    The error ratio only counts once ``iteration >= min_iterations``. An
    iteration that changes nothing (no point moved, no center moved) ends the
    loop regardless of the floor, and ``max_iterations`` is a hard cap.
    """

    threshold: float = ERROR_THRESHOLD
    min_iterations: int = 20
    max_iterations: int = 100

    def __post_init__(self):
        if self.threshold <= 0:
            raise ValueError(f"threshold must be > 0, got {self.threshold}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.min_iterations < 0:
            raise ValueError(f"min_iterations must be >= 0, got {self.min_iterations}")

    def compare(self, error_previous: float, error_current: float) -> ErrorChange:
        """Classify the change from the previous to the current error."""
        if not (is_acceptable_error(error_previous) and is_acceptable_error(error_current)):
            return ErrorChange.DEGENERATE
        if error_previous == 0.0:
            return ErrorChange.DEGENERATE
        ratio = error_current / error_previous
        if not is_acceptable_error(ratio):
            return ErrorChange.DEGENERATE
        if abs(ratio - 1.0) < self.threshold:
            return ErrorChange.CONVERGED
        return ErrorChange.SIGNIFICANT

    def check(
        self,
        iteration: int,
        error_previous: float,
        error_current: float,
        changed: bool,
    ) -> Optional[StopReason]:
        """
        Decide whether the loop stops after ``iteration``.

        Returns:
            The stop reason, or None to keep iterating
        """
        if iteration >= self.min_iterations:
            change = self.compare(error_previous, error_current)
            if change is ErrorChange.DEGENERATE:
                logger.debug(
                    "Degenerate error values at iteration %d (previous=%r, current=%r), "
                    "treating as still converging",
                    iteration, error_previous, error_current,
                )
            elif change is ErrorChange.CONVERGED:
                return StopReason.CONVERGED
        if not changed:
            return StopReason.NO_REASSIGNMENTS
        if iteration >= self.max_iterations:
            return StopReason.MAX_ITERATIONS
        return None
