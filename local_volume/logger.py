"""Loggers of the discoverer.

A pass logs its progress through the application logger; each storage class
unit logs through a child of it, so concurrent units can be told apart.
"""

import logging
import sys
from logging import Formatter, Logger, StreamHandler

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class StdoutFilter(logging.Filter):
    """Keep pass progress and per-volume warnings on stdout."""

    def filter(self, record):
        """Accept records up to WARNING."""
        return record.levelno <= logging.WARNING


class StderrFilter(logging.Filter):
    """Send failed listings, calls and orphaned volumes to stderr."""

    def filter(self, record):
        """Accept records from ERROR up."""
        return record.levelno >= logging.ERROR


def create_logger(name: str, level: str | int | None = None) -> Logger:
    """Return the application logger of the discoverer.

    Progress and warnings go to stdout, errors to stderr. Handlers are attached
    only once, so asking again for the same name does not duplicate the output.
    An invalid level keeps the current one and is reported as an error.
    """
    logger = logging.getLogger(name)
    try:
        if level is not None:
            logger.setLevel(level)
        error_msg = None
    except ValueError:
        error_msg = f"Invalid log level: {level}"

    if not logger.handlers:
        formatter = Formatter(LOG_FORMAT)

        stdout_handler = StreamHandler(sys.stdout)
        stdout_handler.setFormatter(formatter)
        stdout_handler.addFilter(StdoutFilter())
        logger.addHandler(stdout_handler)

        stderr_handler = StreamHandler()
        stderr_handler.setFormatter(formatter)
        stderr_handler.addFilter(StderrFilter())
        logger.addHandler(stderr_handler)

    if error_msg is not None:
        logger.error(error_msg)

    return logger


def get_class_logger(parent: Logger, storage_class: str) -> Logger:
    """Return the logger of a storage class unit.

    Records carry the storage class in their name and reach the handlers of the
    application logger.
    """
    return parent.getChild(storage_class)
