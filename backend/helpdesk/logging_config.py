"""Logging setup shared by both services."""
import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stdout handler to the package logger.

    Safe to call more than once; the handler is only installed the first time.
    """

    log = logging.getLogger("helpdesk")
    log.setLevel(level.upper())

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)

    return log
