"""objfeed core: listing format, partitioning and page tokens."""

from .listing import EntryList, ListingBuilder, split_tasks
from .models import Entry, Listing
from .page_token import decode_page_token, encode_page_token

__all__ = [
    "Entry",
    "Listing",
    "ListingBuilder",
    "EntryList",
    "split_tasks",
    "encode_page_token",
    "decode_page_token",
]
