"""
Listing data models.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Sequence, Tuple

from objfeed.errors import ConfigurationError

if TYPE_CHECKING:
    from objfeed.core.listing import EntryList


@dataclass(frozen=True)
class Entry:
    """
    One discovered object inside a Listing.

    Attributes:
        index: 0-based position in discovery order
        size: Object size in bytes at discovery time
    """

    index: int
    size: int

    def to_dict(self) -> dict[str, int]:
        return {"index": self.index, "size": self.size}

    @classmethod
    def from_dict(cls, raw: Any) -> "Entry":
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Invalid listing entry: {raw!r}")
        index = raw.get("index")
        size = raw.get("size")
        for label, value in (("index", index), ("size", size)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(
                    f"Invalid listing entry {label}: {value!r} (expected int >= 0)"
                )
        return cls(index=index, size=size)


@dataclass(frozen=True)
class Listing:
    """
    Immutable result of one enumeration.

    The blob holds every accepted name; tasks partition the entries into
    units of parallel work; last_name is the cursor for the next
    incremental listing.
    """

    blob: bytes
    tasks: Tuple[Tuple[Entry, ...], ...] = field(default_factory=tuple)
    last_name: Optional[str] = None

    @property
    def task_count(self) -> int:
        return len(self.tasks)

    @property
    def entry_count(self) -> int:
        return sum(len(task) for task in self.tasks)

    @property
    def total_size(self) -> int:
        return sum(entry.size for task in self.tasks for entry in task)

    def get(self, task_index: int) -> "EntryList":
        """
        Names of one task, decoded lazily from the blob.

        Every call returns a new reader with its own decompression cursor.
        """
        from objfeed.core.listing import EntryList

        return EntryList(self.blob, self.tasks[task_index])

    def last_path(self, previous: Optional[str] = None) -> Optional[str]:
        """Cursor for the next run; keeps the previous one if nothing was listed."""
        if self.last_name is not None:
            return self.last_name
        return previous

    def to_dict(self) -> dict[str, Any]:
        return {
            "blob": base64.b64encode(self.blob).decode("ascii"),
            "tasks": [[entry.to_dict() for entry in task] for task in self.tasks],
            "last_name": self.last_name,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "Listing":
        """
        Rebuild a persisted listing.

        Raises:
            ConfigurationError: If the state is malformed or entries are not
                contiguous from index 0
        """
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Invalid listing state: {type(raw).__name__}")

        blob_raw = raw.get("blob")
        if not isinstance(blob_raw, str):
            raise ConfigurationError("Invalid listing state: blob must be a base64 string")
        try:
            blob = base64.b64decode(blob_raw.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise ConfigurationError(f"Invalid listing blob: {e}") from e

        tasks_raw = raw.get("tasks")
        if not isinstance(tasks_raw, list) or not all(
            isinstance(task, list) for task in tasks_raw
        ):
            raise ConfigurationError("Invalid listing state: tasks must be a list of lists")
        tasks = tuple(tuple(Entry.from_dict(e) for e in task) for task in tasks_raw)
        _check_contiguous(tasks)

        last_name = raw.get("last_name")
        if last_name is not None and not isinstance(last_name, str):
            raise ConfigurationError(f"Invalid listing last_name: {last_name!r}")

        return cls(blob=blob, tasks=tasks, last_name=last_name)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str) -> "Listing":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid listing JSON: {e}") from e
        return cls.from_dict(data)

    def __repr__(self) -> str:
        return (
            f"Listing(tasks={self.task_count}, entries={self.entry_count}, "
            f"blob={len(self.blob)}B, last_name={self.last_name!r})"
        )


def _check_contiguous(tasks: Sequence[Sequence[Entry]]) -> None:
    expected = 0
    for task in tasks:
        for entry in task:
            if entry.index != expected:
                raise ConfigurationError(
                    f"Invalid listing: entry index {entry.index} where {expected} was expected"
                )
            expected += 1
