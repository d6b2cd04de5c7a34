"""Configuration models and validation."""

from .config import (
    InputConfig,
    ListingConfig,
    RetryConfig,
    validate_input_config,
    validate_listing_config,
    validate_retry_config,
)

__all__ = [
    "InputConfig",
    "ListingConfig",
    "RetryConfig",
    "validate_input_config",
    "validate_listing_config",
    "validate_retry_config",
]
