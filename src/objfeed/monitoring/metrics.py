"""Prometheus metrics for objfeed components."""

from prometheus_client import Counter

# Retry policy
RETRY_ATTEMPTS = Counter(
    "objfeed_retries_total",
    "Transient failures that were retried",
    ["operation"],
)
RETRY_GIVEUPS = Counter(
    "objfeed_retry_giveups_total",
    "Operations that exhausted their retry budget",
    ["operation"],
)
RETRY_FATAL_ERRORS = Counter(
    "objfeed_retry_fatal_errors_total",
    "Operations aborted by a non-retryable error",
    ["operation"],
)

# Enumeration
LISTED_OBJECTS = Counter(
    "objfeed_listed_objects_total",
    "Objects seen while listing a bucket",
    ["outcome"],
)
LISTED_PAGES = Counter(
    "objfeed_listed_pages_total",
    "Listing pages fetched from the remote store",
)

# Streaming
STREAM_REOPENS = Counter(
    "objfeed_stream_reopens_total",
    "Object streams reopened after a read failure",
)
STREAM_BYTES = Counter(
    "objfeed_stream_bytes_total",
    "Bytes delivered by resumable object streams",
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
