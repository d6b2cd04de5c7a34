"""Configuration models for listing and streaming bucket objects."""

from __future__ import annotations

import os
import re
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from objfeed.errors import ConfigurationError

# Object names used as resume cursors must stay below this many characters.
MAX_LAST_PATH_LENGTH = 127

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in _TRUTHY


class RetryConfig(BaseModel):
    """Retry tunables for every remote call."""

    max_connection_retry: int = Field(
        10,
        ge=1,
        description="Maximum number of attempts per remote call",
    )
    initial_retry_interval_millis: int = Field(
        1000,
        ge=0,
        description="Wait before the first retry (milliseconds)",
    )
    maximum_retry_interval_millis: int = Field(
        300_000,
        ge=0,
        description="Upper bound for the wait between retries (milliseconds)",
    )
    retry_jitter: bool = Field(
        False,
        description="Randomize waits between 50% and 100% of the computed backoff",
    )

    @classmethod
    def from_env(cls) -> "RetryConfig":
        return cls(
            max_connection_retry=int(os.getenv("OBJFEED_MAX_CONNECTION_RETRY", "10")),
            initial_retry_interval_millis=int(
                os.getenv("OBJFEED_INITIAL_RETRY_INTERVAL_MILLIS", "1000")
            ),
            maximum_retry_interval_millis=int(
                os.getenv("OBJFEED_MAXIMUM_RETRY_INTERVAL_MILLIS", "300000")
            ),
            retry_jitter=_env_bool("OBJFEED_RETRY_JITTER", False),
        )


class ListingConfig(BaseModel):
    """Filtering and partitioning of discovered objects."""

    path_match_pattern: str = Field(
        ".*",
        description="Regular expression searched in each object name",
    )
    total_file_count_limit: int = Field(
        2_147_483_647,
        ge=0,
        description="Maximum number of objects accepted into a listing",
    )
    min_task_size: int = Field(
        0,
        ge=0,
        description="Cumulative bytes that close a task (0 = one object per task)",
    )

    @classmethod
    def from_env(cls) -> "ListingConfig":
        return cls(
            path_match_pattern=os.getenv("OBJFEED_PATH_MATCH_PATTERN", ".*"),
            total_file_count_limit=int(
                os.getenv("OBJFEED_TOTAL_FILE_COUNT_LIMIT", "2147483647")
            ),
            min_task_size=int(os.getenv("OBJFEED_MIN_TASK_SIZE", "0")),
        )


class InputConfig(BaseModel):
    """Everything needed to list a bucket and stream its objects."""

    bucket: str = Field(..., min_length=1, description="Source bucket name")
    path_prefix: Optional[str] = Field(
        None, description="List every object under this prefix"
    )
    last_path: Optional[str] = Field(
        None, description="Resume listing after this object name"
    )
    incremental: bool = Field(
        True, description="Report the last listed object for the next run"
    )
    paths: List[str] = Field(
        default_factory=list,
        description="Explicit object names, used when path_prefix is not set",
    )
    use_page_token: bool = Field(
        False,
        description="Resume with an encoded page token instead of StartAfter",
    )
    supports_range: bool = Field(
        True, description="Remote store honours Range GET requests"
    )
    single_object_per_task: bool = Field(
        False, description="Open only the first object of each task"
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)
    listing: ListingConfig = Field(default_factory=ListingConfig)

    @classmethod
    def from_env(cls) -> "InputConfig":
        bucket = os.getenv("OBJFEED_BUCKET")
        if not bucket:
            raise ConfigurationError("OBJFEED_BUCKET must be set")

        paths_raw = os.getenv("OBJFEED_PATHS", "")
        return cls(
            bucket=bucket,
            path_prefix=os.getenv("OBJFEED_PATH_PREFIX") or None,
            last_path=os.getenv("OBJFEED_LAST_PATH") or None,
            incremental=_env_bool("OBJFEED_INCREMENTAL", True),
            paths=[p.strip() for p in paths_raw.split(",") if p.strip()],
            use_page_token=_env_bool("OBJFEED_USE_PAGE_TOKEN", False),
            supports_range=_env_bool("OBJFEED_SUPPORTS_RANGE", True),
            single_object_per_task=_env_bool("OBJFEED_SINGLE_OBJECT_PER_TASK", False),
            retry=RetryConfig.from_env(),
            listing=ListingConfig.from_env(),
        )

    @classmethod
    def from_yaml(cls, path: str) -> "InputConfig":
        """Load config from a YAML mapping (nested retry/listing sections allowed)."""
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return cls.from_mapping(raw)

    @classmethod
    def from_mapping(cls, raw: Any) -> "InputConfig":
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Config must be a mapping, got {type(raw).__name__}"
            )
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


def validate_retry_config(config: RetryConfig) -> None:
    if config.initial_retry_interval_millis > config.maximum_retry_interval_millis:
        raise ConfigurationError(
            "initial_retry_interval_millis "
            f"({config.initial_retry_interval_millis}) exceeds "
            f"maximum_retry_interval_millis ({config.maximum_retry_interval_millis})"
        )


def validate_listing_config(config: ListingConfig) -> None:
    try:
        re.compile(config.path_match_pattern)
    except re.error as e:
        raise ConfigurationError(
            f"Invalid path_match_pattern {config.path_match_pattern!r}: {e}"
        ) from e


def validate_input_config(config: InputConfig) -> None:
    """
    Check cross-field rules that pydantic field constraints cannot express.

    Raises:
        ConfigurationError: On the first violated rule
    """
    if config.last_path is not None and len(config.last_path) > MAX_LAST_PATH_LENGTH:
        raise ConfigurationError(
            f"last_path length is allowed up to {MAX_LAST_PATH_LENGTH} characters"
        )
    if config.path_prefix is None and not config.paths:
        raise ConfigurationError(
            "No file is found. Set path_prefix or a non-empty paths list"
        )
    validate_retry_config(config.retry)
    validate_listing_config(config.listing)


__all__ = [
    "RetryConfig",
    "ListingConfig",
    "InputConfig",
    "validate_retry_config",
    "validate_listing_config",
    "validate_input_config",
]
