"""Process-wide logging setup."""
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Calling this more than once leaves the existing handler in place.
    """
    logger = logging.getLogger("elaro_edge")
    logger.setLevel(level.upper())
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger


def nonce_prefix(nonce: str | None) -> str:
    """Return the loggable prefix of a nonce."""
    return (nonce or "")[:8]
