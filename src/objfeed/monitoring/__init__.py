"""
Monitoring utilities for objfeed.
"""

from objfeed.monitoring.metrics import (
    LISTED_OBJECTS,
    LISTED_PAGES,
    RETRY_ATTEMPTS,
    RETRY_FATAL_ERRORS,
    RETRY_GIVEUPS,
    STREAM_BYTES,
    STREAM_REOPENS,
)

__all__ = [
    "RETRY_ATTEMPTS",
    "RETRY_GIVEUPS",
    "RETRY_FATAL_ERRORS",
    "LISTED_OBJECTS",
    "LISTED_PAGES",
    "STREAM_REOPENS",
    "STREAM_BYTES",
]
