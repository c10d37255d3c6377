"""
Tests for package logging helpers.
"""

import logging

from hub_clustering.utils.logging_config import LOGGER_NAME, get_logger, setup_logging


def test_get_logger_nests_under_package():
    assert get_logger("hub_clustering.algorithms.clustering").name == "hub_clustering.algorithms.clustering"
    assert get_logger("my_script").name == "hub_clustering.my_script"


def test_setup_logging_does_not_stack_handlers(clean_env):
    logger = setup_logging("DEBUG")
    setup_logging("WARNING")
    ours = [h for h in logger.handlers if getattr(h, "_hub_clustering_handler", False)]
    assert len(ours) == 1
    assert logger.level == logging.WARNING
    logger.removeHandler(ours[0])
    logger.setLevel(logging.NOTSET)


def test_setup_logging_reads_environment(clean_env):
    clean_env.setenv("HUB_CLUSTER_LOG_LEVEL", "error")
    logger = setup_logging()
    assert logger.name == LOGGER_NAME
    assert logger.level == logging.ERROR
    for h in [h for h in logger.handlers if getattr(h, "_hub_clustering_handler", False)]:
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)


def test_clustering_logs_progress(caplog, small_data):
    from hub_clustering.algorithms.clustering import GHPC

    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        GHPC(small_data, 3, k=4, seed=0).cluster()
    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("Running GHPC") for m in messages)
    assert any("finished after" in m for m in messages)
