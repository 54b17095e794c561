"""
Logging setup.

A single loguru sink on stderr; modules obtain a logger bound to their name.
"""

import sys

from loguru import logger

logger.remove()

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan> - <level>{message}</level>"
)

_sink_id = logger.add(sys.stderr, level="INFO", colorize=True, format=_FORMAT)


def get_logger(module_name: str):
    """Return a logger bound to the given module name."""
    return logger.bind(module=module_name)


def set_level(level: str) -> None:
    """Replace the stderr sink with one at the given level."""
    global _sink_id
    logger.remove(_sink_id)
    _sink_id = logger.add(sys.stderr, level=level, colorize=True, format=_FORMAT)


__all__ = ["get_logger", "set_level"]
