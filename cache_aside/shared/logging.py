"""Logging setup for services that embed the cache layer.

Cache HIT/MISS/SET lines are DEBUG; fallback demotion and absorbed store
errors are WARNING/ERROR, so INFO is the usual production level.
"""

import logging
import sys

from cache_aside.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CACHE_LOGGER_NAME = "cache_aside"


def setup_logging(debug: bool | None = None) -> None:
    """Configure the root logger and the cache_aside logger hierarchy.

    Args:
        debug: Force DEBUG on or off; None uses settings.debug.
    """
    if debug is None:
        debug = get_settings().debug
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger(CACHE_LOGGER_NAME).setLevel(level)
    # redis-py logs connection churn; keep it out of INFO output
    logging.getLogger("redis").setLevel(logging.DEBUG if debug else logging.WARNING)
