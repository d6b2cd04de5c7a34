"""Resumable object streams that survive dropped connections."""

from __future__ import annotations

import io
from typing import Any, BinaryIO, Optional

from botocore.exceptions import BotoCoreError

from objfeed.config.config import RetryConfig
from objfeed.errors import ObjectReadError, RetryGiveupError
from objfeed.monitoring.metrics import STREAM_BYTES, STREAM_REOPENS
from objfeed.utils.logging import get_logger
from objfeed.utils.retry import with_retry

logger = get_logger(__name__)

# Read failures that trigger a reopen at the current offset
STREAM_ERRORS = (OSError, BotoCoreError)

DISCARD_CHUNK_SIZE = 1024 * 1024


def _discard(body: Any, count: int) -> None:
    """Read and drop the first count bytes of body."""
    remaining = count
    while remaining > 0:
        chunk = body.read(min(remaining, DISCARD_CHUNK_SIZE))
        if not chunk:
            raise EOFError(
                f"Object ended after {count - remaining} bytes, expected at least {count}"
            )
        remaining -= len(chunk)


class ObjectReopener:
    """
    Issues GET requests for one object, optionally starting at an offset.

    Every GET goes through the retry policy. Stores without Range support
    (or responses that ignore the Range header) are handled by discarding
    the already-delivered prefix.
    """

    def __init__(
        self,
        client: Any,
        bucket: str,
        key: str,
        retry_config: Optional[RetryConfig] = None,
        supports_range: bool = True,
    ) -> None:
        self.client = client
        self.bucket = bucket
        self.key = key
        self.retry_config = retry_config or RetryConfig()
        self.supports_range = supports_range
        self.content_length: Optional[int] = None

    def _get_at(self, offset: int) -> BinaryIO:
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Key": self.key}
        if offset and self.supports_range:
            kwargs["Range"] = f"bytes={offset}-"

        resp = self.client.get_object(**kwargs)
        body = resp["Body"]
        if offset == 0 and self.content_length is None:
            self.content_length = resp.get("ContentLength")
        if offset and not resp.get("ContentRange"):
            _discard(body, offset)
        return body

    def open(self) -> BinaryIO:
        """GET the whole object."""
        return with_retry(
            self.retry_config, lambda: self._get_at(0), operation_name="get_object"
        )

    def reopen(self, offset: int, cause: BaseException) -> BinaryIO:
        """GET the object again, positioned at offset."""
        logger.warning(
            "object_read_failed_reopening",
            bucket=self.bucket,
            key=self.key,
            offset=offset,
            error_type=type(cause).__name__,
            error=str(cause),
        )
        STREAM_REOPENS.inc()

        if self.content_length is not None and offset >= self.content_length:
            return io.BytesIO(b"")
        return with_retry(
            self.retry_config,
            lambda: self._get_at(offset),
            operation_name="reopen_object",
        )

    def __repr__(self) -> str:
        return f"ObjectReopener(bucket={self.bucket!r}, key={self.key!r})"


class ResumableStream(io.RawIOBase):
    """
    Raw byte stream that swaps in a fresh connection when a read fails.

    The number of delivered bytes is tracked as the offset; after a read
    error the reopener is asked for a new stream starting there, so the
    consumer sees one continuous byte sequence.
    """

    def __init__(
        self,
        reopener: ObjectReopener,
        stream: Optional[BinaryIO] = None,
        max_consecutive_failures: int = 10,
    ) -> None:
        """
        Args:
            reopener: Source of replacement streams
            stream: Already opened stream (opened lazily when None)
            max_consecutive_failures: Read failures tolerated without any
                byte being delivered in between
        """
        super().__init__()
        self._reopener = reopener
        self._stream = stream
        self.max_consecutive_failures = max(1, max_consecutive_failures)
        self.offset = 0
        self.reopen_count = 0
        self._failures = 0
        self._first_failure: Optional[BaseException] = None

    def readable(self) -> bool:
        return True

    def readinto(self, b: Any) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        if self._stream is None:
            self._stream = self._reopener.open()

        view = memoryview(b).cast("B")
        while True:
            try:
                data = self._stream.read(len(view))
            except STREAM_ERRORS as e:
                self._on_failure(e)
                continue

            n = len(data)
            view[:n] = data
            if n:
                self.offset += n
                self._failures = 0
                self._first_failure = None
                STREAM_BYTES.inc(n)
            return n

    def _on_failure(self, exc: BaseException) -> None:
        self._failures += 1
        if self._first_failure is None:
            self._first_failure = exc
        if self._failures > self.max_consecutive_failures:
            raise ObjectReadError(
                f"Reading {self._reopener.key} failed {self._failures} times "
                f"at offset {self.offset}",
                first_exception=self._first_failure,
                last_exception=exc,
                attempts=self._failures,
            ) from exc

        self._close_underlying()
        try:
            self._stream = self._reopener.reopen(self.offset, exc)
        except RetryGiveupError as e:
            raise ObjectReadError(
                f"Reopening {self._reopener.key} at offset {self.offset} "
                f"gave up after {e.attempts} attempts",
                first_exception=e.first_exception,
                last_exception=e.last_exception,
                attempts=e.attempts,
            ) from e.last_exception
        self.reopen_count += 1

    def _close_underlying(self) -> None:
        if self._stream is None:
            return
        stream, self._stream = self._stream, None
        try:
            stream.close()
        except STREAM_ERRORS as e:
            logger.debug("stream_close_failed", key=self._reopener.key, error=str(e))

    def close(self) -> None:
        if not self.closed:
            self._close_underlying()
        super().close()


def open_resumable(
    client: Any,
    bucket: str,
    key: str,
    retry_config: Optional[RetryConfig] = None,
    supports_range: bool = True,
) -> io.BufferedReader:
    """
    Open one object as a buffered, resumable byte stream.

    Raises:
        ConfigurationError: If the store rejects the GET (missing object, 403)
        RetryGiveupError: If the first GET exhausts the retry budget

    Reads from the returned stream raise ObjectReadError, an OSError, once
    the object cannot be reopened.
    """
    reopener = ObjectReopener(
        client, bucket, key, retry_config=retry_config, supports_range=supports_range
    )
    raw = ResumableStream(
        reopener,
        stream=reopener.open(),
        max_consecutive_failures=reopener.retry_config.max_connection_retry,
    )
    return io.BufferedReader(raw)


__all__ = ["ObjectReopener", "ResumableStream", "open_resumable"]
