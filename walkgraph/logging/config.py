"""Logging configuration for walkgraph.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where the ``walkgraph`` logger tree writes to.
"""

import logging
from typing import Optional, Union

from walkgraph.config import get_settings

LOGGER_NAME = "walkgraph"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class _WalkGraphHandler(logging.StreamHandler):
    """Marker subclass so repeated configuration can find its own handler."""


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def configure_logging(
    level: Optional[Union[int, str]] = None, fmt: str = LOG_FORMAT
) -> logging.Logger:
    """Attach a stream handler to the ``walkgraph`` logger.

    Calling this more than once replaces the level and format of the handler
    installed by the previous call instead of adding another one.

    Args:
        level: Level name or number. Defaults to ``Settings.log_level``.
        fmt: Format string for the handler

    Returns:
        The configured ``walkgraph`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    resolved = _coerce_level(level if level is not None else get_settings().log_level)

    handler = next(
        (h for h in logger.handlers if isinstance(h, _WalkGraphHandler)), None
    )
    if handler is None:
        handler = _WalkGraphHandler()
        logger.addHandler(handler)

    handler.setFormatter(logging.Formatter(fmt))
    handler.setLevel(resolved)
    logger.setLevel(resolved)
    return logger
