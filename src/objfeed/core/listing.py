"""
Listing builder and lazy per-task name reader.

Names are stored as length-prefixed UTF-8 records inside one gzip stream,
so a listing of millions of short paths stays small enough to hand to
every worker.
"""

from __future__ import annotations

import gzip
import io
import re
import zlib
from collections.abc import Sequence
from threading import Lock
from typing import List, Optional, Tuple, overload

from objfeed.config.config import ListingConfig
from objfeed.core.constants import (
    COMPRESSION_LEVEL,
    DEFAULT_MIN_TASK_SIZE,
    DEFAULT_PATH_MATCH_PATTERN,
    DEFAULT_TOTAL_FILE_COUNT_LIMIT,
    GZIP_WBITS,
    RECORD_LENGTH_SIZE,
    RECORD_LENGTH_STRUCT,
)
from objfeed.core.models import Entry, Listing
from objfeed.errors import CorruptedListingError


def split_tasks(
    entries: Sequence[Entry], min_task_size: int
) -> Tuple[Tuple[Entry, ...], ...]:
    """
    Partition entries into consecutive runs.

    A run closes as soon as its cumulative size reaches min_task_size; the
    trailing run is kept even when smaller.
    """
    tasks: List[Tuple[Entry, ...]] = []
    current: List[Entry] = []
    current_size = 0

    for entry in entries:
        current.append(entry)
        current_size += entry.size
        if current_size >= min_task_size:
            tasks.append(tuple(current))
            current = []
            current_size = 0

    if current:
        tasks.append(tuple(current))

    return tuple(tasks)


class ListingBuilder:
    """
    Accumulates discovered object names and finalizes them into a Listing.

    Thread-safe: add() and build() are serialized by a single lock.
    """

    def __init__(
        self,
        path_match_pattern: str = DEFAULT_PATH_MATCH_PATTERN,
        total_file_count_limit: int = DEFAULT_TOTAL_FILE_COUNT_LIMIT,
        min_task_size: int = DEFAULT_MIN_TASK_SIZE,
    ) -> None:
        """
        Args:
            path_match_pattern: Regex searched (not full-matched) in each name
            total_file_count_limit: Maximum number of accepted names
            min_task_size: Cumulative bytes that close a task
        """
        self._pattern = re.compile(path_match_pattern)
        self.limit_count = total_file_count_limit
        self.min_task_size = min_task_size

        self._compressor = zlib.compressobj(COMPRESSION_LEVEL, zlib.DEFLATED, GZIP_WBITS)
        self._chunks: List[bytes] = []
        self._entries: List[Entry] = []
        self._last: Optional[str] = None
        self._built = False
        self._lock = Lock()

    @classmethod
    def from_config(cls, config: ListingConfig) -> "ListingBuilder":
        return cls(
            path_match_pattern=config.path_match_pattern,
            total_file_count_limit=config.total_file_count_limit,
            min_task_size=config.min_task_size,
        )

    @property
    def pattern(self) -> str:
        return self._pattern.pattern

    def size(self) -> int:
        """Number of accepted names so far."""
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def needs_more(self) -> bool:
        """True while fewer names than the limit have been accepted."""
        with self._lock:
            return self._needs_more()

    def _needs_more(self) -> bool:
        return len(self._entries) < self.limit_count

    def add(self, name: str, size: int) -> bool:
        """
        Offer one object to the listing.

        Args:
            name: Object name
            size: Object size in bytes

        Returns:
            True if the name was accepted, False if the limit is reached or
            the pattern does not match

        Raises:
            RuntimeError: If build() was already called
            ValueError: If size is negative
        """
        if size < 0:
            raise ValueError(f"Object size must be >= 0, got {size} for {name!r}")

        with self._lock:
            if self._built:
                raise RuntimeError("Listing is already built")
            if not self._needs_more():
                return False
            if not self._pattern.search(name):
                return False

            data = name.encode("utf-8")
            self._write(RECORD_LENGTH_STRUCT.pack(len(data)))
            self._write(data)

            self._entries.append(Entry(index=len(self._entries), size=size))
            self._last = name
            return True

    def _write(self, data: bytes) -> None:
        chunk = self._compressor.compress(data)
        if chunk:
            self._chunks.append(chunk)

    def build(self) -> Listing:
        """
        Finish the compressed stream and partition the entries.

        Raises:
            RuntimeError: If build() was already called
        """
        with self._lock:
            if self._built:
                raise RuntimeError("Listing is already built")
            self._chunks.append(self._compressor.flush())
            self._built = True

            return Listing(
                blob=b"".join(self._chunks),
                tasks=split_tasks(self._entries, self.min_task_size),
                last_name=self._last,
            )


class EntryList(Sequence):
    """
    Names of one task, decoded on demand from the shared listing blob.

    Reading in ascending index order is a single forward scan. Asking for an
    entry that lies before the cursor restarts decompression from the start
    of the blob (a rewind).

    Not thread-safe: each worker needs its own instance.
    """

    def __init__(self, blob: bytes, entries: Sequence[Entry]) -> None:
        self._blob = blob
        self._entries: Tuple[Entry, ...] = tuple(entries)
        self._stream = self._open()
        self.position = 0
        self.rewinds = 0

    def _open(self) -> gzip.GzipFile:
        return gzip.GzipFile(fileobj=io.BytesIO(self._blob), mode="rb")

    @property
    def entries(self) -> Tuple[Entry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @overload
    def __getitem__(self, i: int) -> str: ...

    @overload
    def __getitem__(self, i: slice) -> List[str]: ...

    def __getitem__(self, i):
        if isinstance(i, slice):
            return [self[j] for j in range(*i.indices(len(self)))]

        entry = self._entries[i]
        if entry.index < self.position:
            self._rewind()

        while self.position < entry.index:
            self._read_record()
        return self._decode(self._read_record())

    def _rewind(self) -> None:
        self._stream.close()
        self._stream = self._open()
        self.position = 0
        self.rewinds += 1

    def _read_exact(self, n: int) -> bytes:
        try:
            data = self._stream.read(n)
        except (OSError, EOFError, zlib.error) as e:
            raise CorruptedListingError(
                f"Corrupted listing at record {self.position}: {e}"
            ) from e
        if len(data) != n:
            raise CorruptedListingError(
                f"Unexpected end of listing at record {self.position}, "
                f"expecting {n} bytes, but received {len(data)} bytes"
            )
        return data

    def _read_record(self) -> bytes:
        (length,) = RECORD_LENGTH_STRUCT.unpack(self._read_exact(RECORD_LENGTH_SIZE))
        data = self._read_exact(length) if length else b""
        self.position += 1
        return data

    def _decode(self, data: bytes) -> str:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptedListingError(
                f"Corrupted listing: record {self.position - 1} is not UTF-8"
            ) from e

    @property
    def closed(self) -> bool:
        return self._stream.closed

    def close(self) -> None:
        self._stream.close()

    def __repr__(self) -> str:
        return f"EntryList(entries={len(self)}, position={self.position}, rewinds={self.rewinds})"


__all__ = ["ListingBuilder", "EntryList", "split_tasks"]
