"""Exception hierarchy for objfeed."""

from __future__ import annotations

from typing import Optional


class ObjectFeedError(Exception):
    """Base class for all objfeed errors."""


class ConfigurationError(ObjectFeedError, ValueError):
    """
    Invalid configuration or a request the remote store rejected as such.

    Never retried: bad bucket/prefix, 4xx responses, malformed persisted
    listings, names too long to encode.
    """


class CorruptedListingError(ObjectFeedError, ValueError):
    """Listing blob is truncated or its records disagree with their lengths."""


class RetryGiveupError(ObjectFeedError):
    """
    Raised once the retry budget of an operation is exhausted.

    Attributes:
        first_exception: First failure observed for the operation
        last_exception: Failure that ended the last attempt (also __cause__)
        attempts: Number of calls made
    """

    def __init__(
        self,
        message: str,
        first_exception: BaseException,
        last_exception: BaseException,
        attempts: int,
    ) -> None:
        super().__init__(message)
        self.first_exception = first_exception
        self.last_exception = last_exception
        self.attempts = attempts

    @property
    def root_cause(self) -> Optional[BaseException]:
        return self.last_exception


class ObjectReadError(RetryGiveupError, OSError):
    """
    Terminal read failure of a resumable object stream.

    Also an OSError, so code consuming the stream as a file sees an I/O error.
    """


__all__ = [
    "ObjectFeedError",
    "ConfigurationError",
    "CorruptedListingError",
    "RetryGiveupError",
    "ObjectReadError",
]
