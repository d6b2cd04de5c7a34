"""Retry utilities with error classification and capped exponential backoff."""

from __future__ import annotations

import random
import re
import time
from typing import Callable, Optional, TypeVar

from botocore.exceptions import ClientError, ParamValidationError

from objfeed.config.config import RetryConfig
from objfeed.errors import ConfigurationError, ObjectFeedError, RetryGiveupError
from objfeed.monitoring.metrics import (
    RETRY_ATTEMPTS,
    RETRY_FATAL_ERRORS,
    RETRY_GIVEUPS,
)
from objfeed.utils.logging import get_logger

logger = get_logger(__name__)

R = TypeVar("R")

# Full stack traces are logged on every Nth retry only.
FULL_LOG_EVERY = 3

# 4xx token errors that a fresh attempt usually fixes (clock skew, key rotation).
RETRYABLE_TOKEN_ERROR_CODES = frozenset({"InvalidIdentityToken", "IDPCommunicationError"})
_INVALID_JWT = re.compile(r"invalid\s+jwt", re.IGNORECASE)


def _status_code(exc: ClientError) -> Optional[int]:
    """HTTP status of a ClientError, falling back to a numeric error code."""
    meta = exc.response.get("ResponseMetadata") or {}
    status = meta.get("HTTPStatusCode")
    if status is not None:
        return int(status)
    code = str((exc.response.get("Error") or {}).get("Code", ""))
    return int(code) if code.isdigit() else None


def _has_body(exc: ClientError) -> bool:
    """Whether the error response carried a non-empty body."""
    # Message alone proves nothing: botocore fills it with the HTTP reason
    # phrase when the body is empty.
    meta = exc.response.get("ResponseMetadata") or {}
    headers = meta.get("HTTPHeaders") or {}
    length = headers.get("content-length")
    return length is not None and str(length).strip() not in ("", "0")


def _is_transient_client_error(exc: ClientError) -> bool:
    error = exc.response.get("Error") or {}
    code = str(error.get("Code") or "")
    message = str(error.get("Message") or "")
    status = _status_code(exc)

    # botocore falls back to the bare status as the code when it cannot
    # parse the error body; a non-empty unparseable body is a proxy hiccup.
    if not code or code.isdigit():
        if message and _has_body(exc):
            logger.warning(
                "invalid_error_response",
                status=status,
                content=message,
            )
            return True

    if code in RETRYABLE_TOKEN_ERROR_CODES or _INVALID_JWT.search(message):
        logger.warning("token_error_retryable", status=status, code=code, content=message)
        return True

    if status is None:
        return True
    return status // 100 != 4


def is_transient(exc: BaseException) -> bool:
    """
    Decide whether a failed remote call is worth another attempt.

    Pure function of the exception; performs no I/O.

    - ClientError with a 4xx status: fatal, except token errors carrying an
      "Invalid JWT" style description and errors without a structured code
      whose raw message is non-empty.
    - Local usage errors (bad parameters, corrupted listings, config errors):
      fatal.
    - Everything else (5xx, connection resets, timeouts): transient.
    """
    if isinstance(exc, ObjectFeedError):
        return False
    if isinstance(exc, ParamValidationError):
        return False
    if isinstance(exc, ClientError):
        return _is_transient_client_error(exc)
    return True


class RetryExecutor:
    """
    Runs a zero-argument callable until it succeeds, fails fatally, or the
    attempt budget is spent.

    Waits grow as initial * 2**(n-1) and are capped at max_wait_ms. With
    jitter enabled each wait is scaled by a random factor in [0.5, 1.0].
    """

    def __init__(
        self,
        max_attempts: int = 10,
        initial_wait_ms: int = 1000,
        max_wait_ms: int = 300_000,
        jitter: bool = False,
        operation_name: str = "request",
    ) -> None:
        self.max_attempts = max(1, max_attempts)
        self.initial_wait_ms = max(0, initial_wait_ms)
        self.max_wait_ms = max(0, max_wait_ms)
        self.jitter = jitter
        self.operation_name = operation_name

    @classmethod
    def from_config(
        cls, config: RetryConfig, operation_name: str = "request"
    ) -> "RetryExecutor":
        return cls(
            max_attempts=config.max_connection_retry,
            initial_wait_ms=config.initial_retry_interval_millis,
            max_wait_ms=config.maximum_retry_interval_millis,
            jitter=config.retry_jitter,
            operation_name=operation_name,
        )

    def compute_wait_ms(self, retry_number: int) -> float:
        """Wait before the given retry (1-based)."""
        exponent = min(max(retry_number - 1, 0), 62)
        wait = min(float(self.initial_wait_ms * (2**exponent)), float(self.max_wait_ms))
        if self.jitter:
            wait *= random.uniform(0.5, 1.0)
        return min(wait, float(self.max_wait_ms))

    def run(self, operation: Callable[[], R]) -> R:
        """
        Execute operation with retries.

        Raises:
            ConfigurationError: Operation failed with a non-retryable error
            RetryGiveupError: All attempts failed with transient errors
        """
        first_exc: Optional[Exception] = None
        attempt = 0
        while True:
            attempt += 1
            try:
                return operation()
            except Exception as exc:
                if first_exc is None:
                    first_exc = exc

                if not is_transient(exc):
                    RETRY_FATAL_ERRORS.labels(operation=self.operation_name).inc()
                    if isinstance(exc, ObjectFeedError):
                        raise
                    raise ConfigurationError(
                        f"{self.operation_name} failed with a non-retryable error: "
                        f"{type(exc).__name__}: {exc}"
                    ) from exc

                if attempt >= self.max_attempts:
                    RETRY_GIVEUPS.labels(operation=self.operation_name).inc()
                    logger.error(
                        "retry_giveup",
                        operation=self.operation_name,
                        attempts=attempt,
                        first_error=repr(first_exc),
                        last_error=repr(exc),
                    )
                    raise RetryGiveupError(
                        f"{self.operation_name} gave up after {attempt} attempts: "
                        f"{type(exc).__name__}: {exc}",
                        first_exception=first_exc,
                        last_exception=exc,
                        attempts=attempt,
                    ) from exc

                wait_ms = self.compute_wait_ms(attempt)
                self._on_retry(exc, attempt, wait_ms)
                time.sleep(wait_ms / 1000.0)

    def _on_retry(self, exc: Exception, retry_count: int, wait_ms: float) -> None:
        RETRY_ATTEMPTS.labels(operation=self.operation_name).inc()
        fields = dict(
            operation=self.operation_name,
            retry=retry_count,
            retry_limit=self.max_attempts - 1,
            wait_seconds=round(wait_ms / 1000.0, 3),
            error_type=type(exc).__name__,
            error=str(exc),
        )
        if retry_count % FULL_LOG_EVERY == 0:
            logger.warning("retrying_operation", exc_info=exc, **fields)
        else:
            logger.warning("retrying_operation", **fields)


def with_retry(
    config: RetryConfig,
    operation: Callable[[], R],
    operation_name: str = "request",
) -> R:
    """Run operation under a RetryExecutor built from config."""
    return RetryExecutor.from_config(config, operation_name=operation_name).run(operation)


__all__ = [
    "FULL_LOG_EVERY",
    "RetryExecutor",
    "is_transient",
    "with_retry",
]
