"""
Logging configuration for hub_clustering.

Every module obtains its logger through ``get_logger(__name__)`` so that the
whole package shares one ``hub_clustering`` logger hierarchy. Applications
call ``setup_logging()`` once to attach a handler; libraries never do.

Usage:
    from hub_clustering.utils.logging_config import get_logger, setup_logging

    setup_logging("DEBUG")
    logger = get_logger(__name__)
"""

import logging
import os
from typing import Optional, Union

LOGGER_NAME = "hub_clustering"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Library convention: stay silent unless the application configures logging.
logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the package hierarchy.

    Args:
        name: Usually ``__name__`` of the calling module. Names outside the
            ``hub_clustering`` namespace are nested under it.

    Returns:
        logging.Logger instance
    """
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def setup_logging(
    level: Optional[Union[int, str]] = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Args:
        level: Logging level name or number. Defaults to the
            ``HUB_CLUSTER_LOG_LEVEL`` environment variable, then ``INFO``.
        fmt: Log record format string

    Returns:
        The configured package logger
    """
    if level is None:
        level = os.getenv("HUB_CLUSTER_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Re-running setup replaces our handler instead of stacking duplicates
    for handler in list(logger.handlers):
        if getattr(handler, "_hub_clustering_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt))
    handler._hub_clustering_handler = True
    logger.addHandler(handler)
    return logger
