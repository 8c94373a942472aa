"""Shared kernel: exceptions, async utilities and settings."""

from .async_utils import CircuitBreaker, RateLimiterRegistry, SourceRateLimiter
from .exceptions import (
    ConfigurationError,
    CriticalConfigError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    HttpError,
    InvalidParameterError,
    NetworkError,
    PaperDiscoveryError,
    ParseError,
    RateLimitError,
    SourceError,
    get_retry_delay,
    is_retryable_error,
)
from .settings import SearchSettings

__all__ = [
    "CircuitBreaker",
    "ConfigurationError",
    "CriticalConfigError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "HttpError",
    "InvalidParameterError",
    "NetworkError",
    "PaperDiscoveryError",
    "ParseError",
    "RateLimitError",
    "RateLimiterRegistry",
    "SearchSettings",
    "SourceError",
    "SourceRateLimiter",
    "get_retry_delay",
    "is_retryable_error",
]
