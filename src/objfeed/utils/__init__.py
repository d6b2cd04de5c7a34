"""
Utility helpers for objfeed.
"""

from .logging import configure_logging, get_logger, log_context, resolve_level
from .retry import RetryExecutor, is_transient, with_retry

__all__ = [
    "RetryExecutor",
    "is_transient",
    "with_retry",
    "configure_logging",
    "get_logger",
    "log_context",
    "resolve_level",
]
