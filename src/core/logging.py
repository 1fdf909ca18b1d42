"""Logging for the resolver and its CLI scripts.

Every module logs through ``get_logger(__name__)`` so records carry the
``archive.*`` or ``core.*`` module path. The tree walker emits one DEBUG line
per unreadable or non-date directory, which is only useful when tracing a single
walk, so it stays at INFO unless ``trace_walk`` is requested.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
WALK_LOGGER = "archive.walker"
QUIET_LOGGERS: tuple[str, ...] = ("asyncio",)


def setup_logging(level: str = "INFO", *, trace_walk: bool = False) -> logging.Logger:
    """Configure the root logger for a resolver run and return it."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    formatter = logging.Formatter(LOG_FORMAT)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    else:
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    walk_logger = logging.getLogger(WALK_LOGGER)
    walk_logger.setLevel(logging.NOTSET if trace_walk else max(numeric_level, logging.INFO))
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Return a named logger."""
    if not name.strip():
        raise ValueError("Logger name cannot be empty.")
    return logging.getLogger(name)
