"""Logging helpers for walkgraph."""

from .config import LOG_FORMAT, LOGGER_NAME, configure_logging

__all__ = ["configure_logging", "LOGGER_NAME", "LOG_FORMAT"]
