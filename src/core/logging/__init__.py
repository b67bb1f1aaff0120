"""
Structured logging module.

Provides console + rotating JSON file logging for the batcher process.
"""

from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import setup_logging

__all__ = [
    "ConsoleFormatter",
    "JSONFormatter",
    "setup_logging",
]
