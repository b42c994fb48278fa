"""
Logger configuration for psmtsv.
"""

import logging

LOG_FORMAT = "[%(asctime)s] %(levelname).1s | %(name)s | %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging the way the command line does."""
    logging.basicConfig(level=level, datefmt=LOG_DATEFMT, format=LOG_FORMAT)
