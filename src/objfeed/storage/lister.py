"""Paginated bucket enumeration feeding a ListingBuilder."""

from __future__ import annotations

from typing import Any, Dict, Optional

from objfeed.config.config import RetryConfig
from objfeed.core.listing import ListingBuilder
from objfeed.core.models import Listing
from objfeed.core.page_token import encode_page_token
from objfeed.errors import ConfigurationError
from objfeed.monitoring.metrics import LISTED_OBJECTS, LISTED_PAGES
from objfeed.utils.logging import get_logger
from objfeed.utils.retry import with_retry

logger = get_logger(__name__)


def describe_bucket(
    client: Any, bucket: str, retry_config: Optional[RetryConfig] = None
) -> Dict[str, Any]:
    """Log basic bucket information at debug level."""
    resp = with_retry(
        retry_config or RetryConfig(),
        lambda: client.get_bucket_location(Bucket=bucket),
        operation_name="get_bucket_location",
    )
    info = {
        "bucket": bucket,
        # us-east-1 buckets report no location constraint
        "location": resp.get("LocationConstraint") or "us-east-1",
    }
    logger.debug("bucket_info", **info)
    return info


def list_objects(
    client: Any,
    bucket: str,
    prefix: Optional[str],
    builder: ListingBuilder,
    retry_config: Optional[RetryConfig] = None,
    last_path: Optional[str] = None,
    use_page_token: bool = False,
) -> Listing:
    """
    List objects under prefix into builder and return the built Listing.

    Zero-byte objects (directory placeholders) are skipped. Pagination stops
    early once the builder has reached its count limit.

    Args:
        client: boto3 S3 client
        bucket: Bucket name
        prefix: Key prefix ("" or None lists the whole bucket)
        builder: Fresh ListingBuilder receiving the names
        retry_config: Retry tunables for each page request
        last_path: Resume after this object name
        use_page_token: Resume with an encoded page token instead of StartAfter

    Raises:
        ConfigurationError: If the store rejects the listing request
        RetryGiveupError: If a page could not be fetched within the retry budget
    """
    retry_config = retry_config or RetryConfig()
    params: Dict[str, Any] = {"Bucket": bucket, "Prefix": prefix or ""}
    if last_path:
        if use_page_token:
            params["ContinuationToken"] = encode_page_token(last_path)
        else:
            params["StartAfter"] = last_path

    pages = 0
    try:
        while builder.needs_more():
            request = dict(params)
            page = with_retry(
                retry_config,
                lambda: client.list_objects_v2(**request),
                operation_name="list_objects",
            )
            pages += 1
            LISTED_PAGES.inc()

            for obj in page.get("Contents", []):
                if not builder.needs_more():
                    break
                key = obj["Key"]
                size = int(obj.get("Size", 0))
                if size <= 0:
                    LISTED_OBJECTS.labels(outcome="skipped_empty").inc()
                elif builder.add(key, size):
                    LISTED_OBJECTS.labels(outcome="accepted").inc()
                else:
                    LISTED_OBJECTS.labels(outcome="filtered").inc()
                logger.debug(
                    "object_listed",
                    key=key,
                    size=size,
                    last_modified=str(obj.get("LastModified", "")),
                )

            token = page.get("NextContinuationToken")
            if not page.get("IsTruncated") or not token:
                break
            params.pop("StartAfter", None)
            params["ContinuationToken"] = token
    except ConfigurationError as e:
        raise ConfigurationError(
            f"Files listing failed: bucket:{bucket}, prefix:{prefix}, "
            f"last_path:{last_path}: {e}"
        ) from e

    listing = builder.build()
    logger.info(
        "listing_built",
        bucket=bucket,
        prefix=prefix,
        pages=pages,
        entries=listing.entry_count,
        tasks=listing.task_count,
        last_name=listing.last_name,
    )
    return listing


__all__ = ["describe_bucket", "list_objects"]
