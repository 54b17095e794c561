"""
lazyext Core - process-wide session and logging.

- Session: registry, trigger index and activation engine behind a message queue
- Logger: loguru sink configuration
"""

__all__ = []
