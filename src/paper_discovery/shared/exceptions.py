"""
Unified Exception Hierarchy for Paper Discovery.

Exception Hierarchy:
    PaperDiscoveryError (base)
    ├── SourceError              (non-fatal, recorded per source)
    │   ├── NetworkError
    │   ├── HttpError
    │   ├── RateLimitError
    │   └── ParseError
    └── CriticalConfigError      (fail fast, before any network activity)
        ├── InvalidParameterError
        └── ConfigurationError

Source errors never abort a search. They are caught by the adapter,
demoted to a ``{source, message}`` record and surfaced in the response
metadata. Only ``CriticalConfigError`` escapes to the caller.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    WARNING = auto()  # Recoverable, can continue
    ERROR = auto()  # Failed but can retry
    CRITICAL = auto()  # Cannot continue
    TRANSIENT = auto()  # Temporary, should retry automatically


class ErrorCategory(Enum):
    """Categories for error classification."""

    NETWORK = "network"
    HTTP = "http"
    RATE_LIMIT = "rate_limit"
    PARSE = "parse"
    CONFIGURATION = "config"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Extra detail attached to an error."""

    operation: str | None = None
    source: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    retry_after: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class PaperDiscoveryError(Exception):
    """
    Base exception for all paper discovery errors.

    Provides:
    - Structured error context
    - Severity classification
    - Retry guidance
    """

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.NETWORK,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "category": self.category.value,
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.source:
            result["source"] = self.context.source
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.retry_after:
            result["retry_after_seconds"] = self.context.retry_after
        return result


# =============================================================================
# Source Errors (non-fatal)
# =============================================================================


class SourceError(PaperDiscoveryError):
    """Base class for failures of a single external source."""


class NetworkError(SourceError):
    """Connection, DNS or transport-level timeout failure."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.TRANSIENT,
            category=ErrorCategory.NETWORK,
            retryable=True,
        )


class HttpError(SourceError):
    """Non-2xx HTTP status. Server-side (5xx) statuses are retryable."""

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        self.status_code = status_code
        retryable = status_code >= 500
        super().__init__(
            message or f"HTTP {status_code}",
            context=context,
            severity=ErrorSeverity.TRANSIENT if retryable else ErrorSeverity.ERROR,
            category=ErrorCategory.HTTP,
            retryable=retryable,
        )


class RateLimitError(SourceError):
    """Raised on HTTP 429 or while a source's circuit breaker is open."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: float | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext()
        if retry_after is not None:
            ctx = ErrorContext(
                operation=ctx.operation,
                source=ctx.source,
                input_value=ctx.input_value,
                suggestion=ctx.suggestion,
                retry_after=retry_after,
                metadata=ctx.metadata,
            )
        super().__init__(
            message,
            context=ctx,
            severity=ErrorSeverity.TRANSIENT,
            category=ErrorCategory.RATE_LIMIT,
            retryable=True,
        )


class ParseError(SourceError):
    """Malformed or unexpected vendor payload."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        full_msg = f"Parse error: {message}"
        if source:
            full_msg = f"Parse error ({source}): {message}"
        super().__init__(
            full_msg,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.PARSE,
            retryable=False,
        )


# =============================================================================
# Configuration Errors (fatal)
# =============================================================================


class CriticalConfigError(PaperDiscoveryError):
    """Malformed options or missing credentials. Raised before any I/O."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )


class InvalidParameterError(CriticalConfigError):
    """A single request option is out of range or of the wrong shape."""

    def __init__(
        self,
        param_name: str,
        value: Any,
        expected: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        self.param_name = param_name
        self.value = value
        ctx = context or ErrorContext(
            operation="validate_request",
            input_value=value,
            suggestion=f"'{param_name}' must be {expected}",
        )
        super().__init__(f"Invalid {param_name}: {value!r} (expected {expected})", context=ctx)


class ConfigurationError(CriticalConfigError):
    """A source adapter was constructed without a required credential."""


# =============================================================================
# Retry helpers
# =============================================================================


def is_retryable_error(error: Exception) -> bool:
    """Check if an error should be retried."""
    if isinstance(error, PaperDiscoveryError):
        return error.retryable
    return False


def get_retry_delay(error: Exception | None, attempt: int) -> float:
    """
    Calculate retry delay with exponential backoff and jitter.

    Args:
        error: The exception that occurred (its retry_after is honoured)
        attempt: Current attempt number (0-based)

    Returns:
        Delay in seconds before next retry, capped at 30 seconds
    """
    base_delay = 1.0

    if isinstance(error, PaperDiscoveryError) and error.context.retry_after:
        base_delay = error.context.retry_after

    delay = base_delay * (2**attempt)
    jitter = random.uniform(0, 0.1 * delay)

    return min(delay + jitter, 30.0)
