"""Input service: plan a listing, open its tasks, report the resume cursor."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import boto3

from objfeed.config.config import InputConfig, validate_input_config
from objfeed.core.constants import EXPLICIT_PATH_SIZE
from objfeed.core.listing import ListingBuilder
from objfeed.core.models import Listing
from objfeed.storage.lister import describe_bucket, list_objects
from objfeed.storage.provider import ObjectStreamProvider, SingleObjectProvider
from objfeed.utils.logging import get_logger, log_context

logger = get_logger(__name__)


class ObjectInputService:
    """
    Ties configuration, enumeration and streaming together.

    The storage client is injected; this class never builds credentials.
    """

    def __init__(self, config: InputConfig, client: Any) -> None:
        """
        Args:
            config: Validated input configuration
            client: boto3 S3 client

        Raises:
            ConfigurationError: If config breaks a cross-field rule
        """
        validate_input_config(config)
        self.config = config
        self.client = client

    @classmethod
    def from_config(
        cls, config: InputConfig, client: Optional[Any] = None
    ) -> "ObjectInputService":
        return cls(config, client or boto3.client("s3"))

    def build_listing(self) -> Listing:
        """
        Enumerate the configured objects.

        With path_prefix the bucket is listed (resuming after last_path);
        otherwise the explicit paths are taken as-is.
        """
        config = self.config
        builder = ListingBuilder.from_config(config.listing)

        with log_context(bucket=config.bucket):
            if config.path_prefix is not None:
                # Extra request, made only when the lister logs at debug level
                if logging.getLogger(describe_bucket.__module__).isEnabledFor(logging.DEBUG):
                    describe_bucket(self.client, config.bucket, config.retry)

                listing = list_objects(
                    self.client,
                    config.bucket,
                    config.path_prefix,
                    builder,
                    retry_config=config.retry,
                    last_path=config.last_path,
                    use_page_token=config.use_page_token,
                )
                if listing.task_count == 0:
                    logger.info(
                        "no_objects_found",
                        prefix=config.path_prefix,
                        last_path=config.last_path,
                    )
                return listing

            for path in config.paths:
                builder.add(path, EXPLICIT_PATH_SIZE)
            listing = builder.build()
            logger.info(
                "listing_built_from_paths",
                paths=len(config.paths),
                tasks=listing.task_count,
            )
            return listing

    def open_task(self, listing: Listing, task_index: int) -> ObjectStreamProvider:
        """Provider streaming the objects of one task."""
        provider_cls = (
            SingleObjectProvider
            if self.config.single_object_per_task
            else ObjectStreamProvider
        )
        return provider_cls(
            self.client,
            self.config.bucket,
            listing.get(task_index),
            retry_config=self.config.retry,
            supports_range=self.config.supports_range,
        )

    def next_config_diff(self, listing: Listing) -> Dict[str, Any]:
        """Config changes for the next incremental run."""
        if not self.config.incremental:
            return {}
        return {"last_path": listing.last_path(self.config.last_path)}


__all__ = ["ObjectInputService"]
