"""Utility functions and classes."""

from .logging_utils import CallbackLogHandler, configure_logging, get_structured_logger

__all__ = [
    "CallbackLogHandler",
    "configure_logging",
    "get_structured_logger",
]
