"""Per-task object stream providers."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional

from objfeed.config.config import RetryConfig
from objfeed.core.constants import URI_SCHEME
from objfeed.storage.stream import open_resumable
from objfeed.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class OpenedObject:
    """A resumable stream plus the location it reads from."""

    key: str
    stream: io.BufferedReader
    hint: str

    def __repr__(self) -> str:
        return f"OpenedObject(hint={self.hint!r})"


class ObjectStreamProvider:
    """
    Opens the objects of one task, one after another.

    open_next() returns None once every name has been opened. Streams are
    owned by the caller; close() only closes the most recently opened one
    if it is still open, along with the name source when it has close()
    (an EntryList holds a gzip reader over the listing blob).
    """

    def __init__(
        self,
        client: Any,
        bucket: str,
        names: Iterable[str],
        retry_config: Optional[RetryConfig] = None,
        supports_range: bool = True,
    ) -> None:
        """
        Args:
            client: boto3 S3 client
            bucket: Source bucket
            names: Object names of the task (typically Listing.get(i))
            retry_config: Retry tunables for GET and reopen calls
            supports_range: Whether the store honours Range requests
        """
        self.client = client
        self.bucket = bucket
        self.retry_config = retry_config or RetryConfig()
        self.supports_range = supports_range
        self._names = names
        self._iterator: Iterator[str] = iter(names)
        self._current: Optional[OpenedObject] = None
        self.opened_count = 0

    def open_next(self) -> Optional[OpenedObject]:
        key = next(self._iterator, None)
        if key is None:
            return None
        return self._open(key)

    def _open(self, key: str) -> OpenedObject:
        hint = f"{URI_SCHEME}://{self.bucket}/{key}"
        logger.debug("opening_object", bucket=self.bucket, key=key)
        stream = open_resumable(
            self.client,
            self.bucket,
            key,
            retry_config=self.retry_config,
            supports_range=self.supports_range,
        )
        self._current = OpenedObject(key=key, stream=stream, hint=hint)
        self.opened_count += 1
        return self._current

    def __iter__(self) -> Iterator[OpenedObject]:
        while True:
            opened = self.open_next()
            if opened is None:
                return
            yield opened

    def close(self) -> None:
        if self._current is not None and not self._current.stream.closed:
            self._current.stream.close()
        self._current = None
        close_names = getattr(self._names, "close", None)
        if close_names is not None:
            close_names()

    def __enter__(self) -> "ObjectStreamProvider":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class SingleObjectProvider(ObjectStreamProvider):
    """Opens only the first object of its task, then signals the end."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._opened = False

    def open_next(self) -> Optional[OpenedObject]:
        if self._opened:
            return None
        self._opened = True
        return super().open_next()


__all__ = ["OpenedObject", "ObjectStreamProvider", "SingleObjectProvider"]
