"""Logging setup for the proofguard namespace."""

import logging
import sys
from typing import Optional, TextIO, Union

LOGGER_NAME = "proofguard"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: Union[int, str] = "WARNING", stream: Optional[TextIO] = None) -> logging.Logger:
    """Install a single stderr handler on the proofguard logger.

    Calling it again replaces the previous handler, so repeated CLI
    invocations in one process never duplicate output.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False

    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
