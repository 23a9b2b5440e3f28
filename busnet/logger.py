"""
Logging configuration for the segment pricing engine
"""

import logging
import sys

from busnet.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = None) -> logging.Logger:
    """Attach a console handler to the ``busnet`` logger once"""
    logger = logging.getLogger("busnet")
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    # Prevent duplicate handlers
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console_handler)

    return logger
