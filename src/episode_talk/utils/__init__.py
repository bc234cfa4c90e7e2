"""Shared utilities for error handling."""

from episode_talk.utils.errors import (
    ConfigurationError,
    ErrorCode,
    GenerationError,
    GenerationTimeoutError,
    InvalidInputError,
    ProviderError,
)

__all__ = [
    "ConfigurationError",
    "ErrorCode",
    "GenerationError",
    "GenerationTimeoutError",
    "InvalidInputError",
    "ProviderError",
]
