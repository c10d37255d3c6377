"""
Hub Clustering - Core Package

Hubness-aware clustering for high-dimensional data: cluster centers are
chosen among the points that occur most often in other points' k-nearest
neighbor lists.

This package provides:
- GHPC, GHPKM and LHPC clustering algorithms
- Hubness (k-occurrence) profiles with a scikit-learn neighbor-graph adapter
- Environment-driven configuration
"""

__version__ = "0.1.0"

from .algorithms import GHPC, GHPKM, LHPC, ClusteringResult, ghpc, ghpkm, lhpc

# Explicitly import subpackages to ensure they're discoverable
from . import algorithms
from . import utils

__all__ = [
    "GHPC",
    "GHPKM",
    "LHPC",
    "ClusteringResult",
    "ghpc",
    "ghpkm",
    "lhpc",
    "algorithms",
    "utils",
]
