"""Expose the public utility surface for imapsock.

What:
  Re-export the logging helpers that other packages import without knowing the
  underlying module layout.

Interfaces:
  ``JsonLogger`` and ``get_logger``.
"""

from .logging import JsonLogger, get_logger

__all__ = ["JsonLogger", "get_logger"]
