"""Console logging for programs that embed the engine."""

from __future__ import annotations

import logging
from logging import Logger

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: int = logging.INFO) -> Logger:
    """Install the pipe-separated console format and return the ``quiz_engine`` logger.

    ``level`` is applied to the package logger only, so a host that already
    configured the root logger keeps its own threshold.
    """
    logging.basicConfig(format=LOG_FORMAT)
    logger = logging.getLogger("quiz_engine")
    logger.setLevel(level)
    return logger
