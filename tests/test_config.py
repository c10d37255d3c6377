"""
Tests for environment-driven configuration.
"""

import os

import pytest

from hub_clustering.algorithms.clustering import GHPC, LHPC
from hub_clustering.algorithms.errors import InvalidConfigurationError
from hub_clustering.config import (
    VARIANT_DEFAULTS,
    ClusteringConfig,
    Config,
    load_config,
)


def test_global_defaults(clean_env):
    cfg = Config().get_clustering_config("global")
    assert cfg == ClusteringConfig(
        k=10,
        probabilistic_iterations=20,
        max_iterations=100,
        error_threshold=0.001,
        max_retries=10,
        metric="euclidean",
        keep_history=False,
    )


def test_local_defaults(clean_env):
    cfg = Config().get_clustering_config("LOCAL")
    assert (cfg.k, cfg.probabilistic_iterations, cfg.max_iterations) == (5, 15, 45)


def test_environment_overrides(clean_env):
    clean_env.setenv("HUB_CLUSTER_K", "7")
    clean_env.setenv("HUB_CLUSTER_ERROR_THRESHOLD", "0.01")
    clean_env.setenv("HUB_CLUSTER_KEEP_HISTORY", "yes")
    cfg = Config().get_clustering_config("local")
    assert cfg.k == 7
    assert cfg.error_threshold == 0.01
    assert cfg.keep_history is True
    # untouched fields keep the variant default
    assert cfg.max_iterations == 45


def test_explicit_overrides_beat_environment(clean_env):
    clean_env.setenv("HUB_CLUSTER_K", "7")
    cfg = Config().get_clustering_config("global", k=3, max_iterations=None)
    assert cfg.k == 3
    assert cfg.max_iterations == 100


def test_invalid_environment_value(clean_env):
    clean_env.setenv("HUB_CLUSTER_MAX_ITERATIONS", "many")
    with pytest.raises(InvalidConfigurationError, match="HUB_CLUSTER_MAX_ITERATIONS"):
        Config()


def test_unknown_variant(clean_env):
    with pytest.raises(InvalidConfigurationError, match="Unknown variant"):
        Config().get_clustering_config("regional")


@pytest.mark.parametrize(
    "field,value",
    [("k", 0), ("max_iterations", 0), ("error_threshold", 0.0),
     ("max_retries", -1), ("probabilistic_iterations", -2)],
)
def test_invalid_values_rejected(field, value):
    with pytest.raises(InvalidConfigurationError):
        VARIANT_DEFAULTS["global"].with_overrides(**{field: value})


def test_load_config_restores_environment(clean_env):
    cfg = load_config("global", env={"HUB_CLUSTER_MAX_RETRIES": "2"})
    assert cfg.max_retries == 2
    assert "HUB_CLUSTER_MAX_RETRIES" not in os.environ


def test_clusterer_uses_variant_defaults_and_overrides(small_data):
    assert GHPC(small_data, 2, config=VARIANT_DEFAULTS["global"]).k == 10
    assert LHPC(small_data, 2, config=VARIANT_DEFAULTS["local"]).k == 5
    model = LHPC(small_data, 2, k=3, config=VARIANT_DEFAULTS["local"], max_iterations=9)
    assert model.k == 3
    assert model.monitor.max_iterations == 9
    assert model.monitor.min_iterations == 15


def test_clusterer_with_loaded_config(clean_env, small_data):
    clean_env.setenv("HUB_CLUSTER_K", "6")
    model = GHPC(small_data, 2, config=load_config("global"))
    assert model.k == 6
