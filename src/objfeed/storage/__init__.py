"""Remote storage access: enumeration and resumable object streams."""

from .lister import describe_bucket, list_objects
from .provider import ObjectStreamProvider, OpenedObject, SingleObjectProvider
from .stream import ObjectReopener, ResumableStream, open_resumable

__all__ = [
    "describe_bucket",
    "list_objects",
    "ObjectStreamProvider",
    "SingleObjectProvider",
    "OpenedObject",
    "ObjectReopener",
    "ResumableStream",
    "open_resumable",
]
