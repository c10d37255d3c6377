"""
Pytest configuration and shared fixtures.

This file is automatically discovered by pytest and provides fixtures
available to all test modules.
"""

import os

import numpy as np
import pytest

BLOB_CENTERS = np.array([[0.0, 0.0], [10.0, 0.0], [0.0, 10.0]])
BLOB_STD = 0.5


@pytest.fixture
def rng():
    """Seeded NumPy generator."""
    return np.random.default_rng(42)


@pytest.fixture
def blobs():
    """
    Three well-separated 2-D Gaussian blobs.

    Returns:
        Tuple of (X, true_labels, centers): 200 points (67/67/66 per blob)
    """
    rng = np.random.default_rng(7)
    sizes = [67, 67, 66]
    X = np.vstack([
        center + BLOB_STD * rng.standard_normal((size, 2))
        for center, size in zip(BLOB_CENTERS, sizes)
    ])
    labels = np.repeat(np.arange(3), sizes)
    return X, labels, BLOB_CENTERS.copy()


@pytest.fixture
def small_data():
    """A small random dataset for fast tests."""
    rng = np.random.default_rng(0)
    return rng.standard_normal((30, 4))


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every HUB_CLUSTER_* variable for the duration of a test."""
    for key in list(os.environ):
        if key.startswith("HUB_CLUSTER_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch
