"""objfeed - list bucket objects, partition them into tasks and stream them back."""

__version__ = "0.1.0"

from .config import InputConfig, ListingConfig, RetryConfig  # noqa: E402
from .core import Entry, EntryList, Listing, ListingBuilder  # noqa: E402
from .errors import (  # noqa: E402
    ConfigurationError,
    CorruptedListingError,
    ObjectFeedError,
    ObjectReadError,
    RetryGiveupError,
)
from .input import ObjectInputService  # noqa: E402
from .storage import ObjectStreamProvider, SingleObjectProvider  # noqa: E402
from .utils import RetryExecutor, is_transient  # noqa: E402

__all__ = [
    "Entry",
    "EntryList",
    "Listing",
    "ListingBuilder",
    "InputConfig",
    "ListingConfig",
    "RetryConfig",
    "ObjectInputService",
    "ObjectStreamProvider",
    "SingleObjectProvider",
    "RetryExecutor",
    "is_transient",
    "ObjectFeedError",
    "ConfigurationError",
    "CorruptedListingError",
    "RetryGiveupError",
    "ObjectReadError",
]
