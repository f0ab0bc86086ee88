"""Logging configuration for the synteny API server."""
import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Send log records to stdout.

    Args:
        level: Level name such as "DEBUG" or "INFO"
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    # Replace handlers so repeated app startups don't duplicate output
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
