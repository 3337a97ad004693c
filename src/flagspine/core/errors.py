"""
Structured error types for flagspine.

Provides a small hierarchy of typed errors with metadata for
categorization and logging. Refresh failures are raised as these types
inside the refresh engine and converted into a logged soft failure at the
cycle boundary, so callers of the read API never see them.

Manifesto:
    - **Typed Error Hierarchy:** Different error types for different failure domains
    - **Rich Context:** Errors carry identity, URL, and HTTP status for logging
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                     FlagSpineError                               │
        │            (category, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  NetworkError      SourceError       AuthError      ConfigError │
        │  (NETWORK)         (SOURCE)          (AUTH)         (CONFIG)    │
        │                        │                                         │
        │                    ParseError                                    │
        │                    (PARSE)                                       │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = NetworkError("Connection refused")
    >>> error.with_context(identity="wh-1", url="https://host/api")
    NetworkError('Connection refused', category=NETWORK)
    >>> error.context.identity
    'wh-1'

Guardrails:
    ❌ DON'T: Let these escape a scheduled refresh cycle
    ✅ DO: Log ``error.to_dict()`` and keep the previous snapshot

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, flagspine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        NETWORK: Connection, timeout, TLS errors
        SOURCE: Upstream endpoint answered with a non-success status
        PARSE: Response body could not be decoded
        AUTH: Authenticator could not produce request headers
        CONFIG: Missing or invalid settings / arguments
        INTERNAL: Bugs, unexpected state
    """

    NETWORK = "NETWORK"
    SOURCE = "SOURCE"
    PARSE = "PARSE"
    AUTH = "AUTH"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    The `to_dict()` method serializes all non-None fields for logging.

    Attributes:
        identity: Unique identifier of the compute endpoint
        url: URL that was being accessed
        http_status: HTTP status code if applicable
        metadata: Additional key-value pairs
    """

    identity: str | None = None
    url: str | None = None
    http_status: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["identity", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class FlagSpineError(Exception):
    """
    Base exception for all flagspine errors.

    Every instance carries:
    - **category:** ErrorCategory for classification
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception for chaining

    Subclasses set ``default_category``.

    Examples:
        >>> error = FlagSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["category"]
        'INTERNAL'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> FlagSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SourceError("Failed").with_context(
                identity="warehouse-1",
                http_status=503,
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }

        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict

        if self.cause is not None:
            result["cause"] = str(self.cause)

        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# REFRESH ERRORS
# =============================================================================


class NetworkError(FlagSpineError):
    """Connection refused, timeout, TLS failure."""

    default_category = ErrorCategory.NETWORK


class SourceError(FlagSpineError):
    """The endpoint answered, but not with a usable response."""

    default_category = ErrorCategory.SOURCE


class ParseError(SourceError):
    """Response body could not be decoded into the expected shape."""

    default_category = ErrorCategory.PARSE


class AuthError(FlagSpineError):
    """Authenticator failed to produce request headers."""

    default_category = ErrorCategory.AUTH


# =============================================================================
# CONFIG ERRORS
# =============================================================================


class ConfigError(FlagSpineError):
    """Invalid or missing configuration (e.g. a blank host)."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "FlagSpineError",
    "NetworkError",
    "SourceError",
    "ParseError",
    "AuthError",
    "ConfigError",
]
