"""
Structured error types for the Data API client core.

Every failure the command pipeline can produce is a ``DataAPIError``. Instead
of generic exceptions that lose context, each error carries:

- **Category:** What kind of failure (network, config, application, mapping...)
- **Retryable:** Whether the transport may retry the exchange automatically
- **Retry-after:** How long to wait before retrying, when the server says so
- **Context:** Command name, URL, HTTP status, request id, attempt count
- **Cause:** Chained underlying exception for root cause analysis

Manifesto:
    - **Four failure kinds:** configuration, transport, application, mapping
    - **Explicit retry semantics:** Only transport errors are ever retried
    - **Diagnostics travel with the error:** Application errors wrap the full
      execution info so a caller can reproduce the failing request
    - **Error chaining:** Preserve the original exception as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       DataAPIError                               │
        │  (category, retryable, retry_after, context, cause)             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConfigError         TransportError        DataAPIResponseError  │
        │  (CONFIG)            (NETWORK, retryable)  (APPLICATION)         │
        │     │                   │                                        │
        │  MissingConfigError  NetworkError          MappingError          │
        │  InvalidConfigError  RequestTimeoutError   (MAPPING)             │
        │  InvalidEndpointError HttpStatusError                            │
        │                      RetryExhaustedError   SerializationError    │
        │                      (terminal)            (SERIALIZATION)       │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = RetryExhaustedError("POST failed", attempts=3)
    >>> error.retryable
    False
    >>> error.context.attempts
    3

    >>> try:
    ...     raise ConnectionError("DNS failure")
    ... except ConnectionError as e:
    ...     raise NetworkError("Failed to reach Data API", cause=e)
    Traceback (most recent call last):
    ...
    NetworkError: Failed to reach Data API

Guardrails:
    ❌ DON'T: Retry a DataAPIResponseError - the server already rejected it
    ✅ DO: Inspect ``error.errors`` and fix the command

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context,
    dataapi-core, observability

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dataapi.command.execution_info import ExecutionInfo
    from dataapi.command.response import DataAPIErrorDescriptor


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Categories are grouped by their retry behavior:
    - **Infrastructure (transient):** NETWORK
    - **Configuration (never retryable):** CONFIG, AUTH
    - **Remote service:** APPLICATION
    - **Client-side data handling:** SERIALIZATION, MAPPING
    - **Internal errors:** INTERNAL, UNKNOWN

    Examples:
        >>> ErrorCategory.NETWORK.value
        'NETWORK'
    """

    # Infrastructure errors (usually transient)
    NETWORK = "NETWORK"           # Connection, timeout, DNS, 5xx

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"             # Missing transport, invalid endpoint
    AUTH = "AUTH"                 # Rejected credentials

    # Errors reported by the Data API inside a well-formed response
    APPLICATION = "APPLICATION"

    # Client-side data handling
    SERIALIZATION = "SERIALIZATION"  # Invalid JSON, unsupported value
    MAPPING = "MAPPING"              # Result shape does not match the payload

    # Internal errors
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields cover what the command pipeline knows at failure time; any
    other key lands in ``metadata``. ``to_dict()`` serializes the non-None
    fields for logging.

    Examples:
        >>> ctx = ErrorContext(command="insertOne", http_status=503)
        >>> ctx.to_dict()
        {'command': 'insertOne', 'http_status': 503}

    Attributes:
        command: Name of the command being executed
        url: URL the request was posted to
        http_status: HTTP status code if a response was received
        request_id: Value of the outbound request-id header
        attempts: Number of HTTP attempts made
        metadata: Additional key-value pairs
    """

    command: str | None = None
    url: str | None = None
    http_status: int | None = None
    request_id: str | None = None
    attempts: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["command", "url", "http_status", "request_id", "attempts"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DataAPIError(Exception):
    """
    Base exception for all Data API client errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that a
    bare ``raise NetworkError("...")`` already carries the right semantics.

    Examples:
        >>> error = DataAPIError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(command="findOne").context.command
        'findOne'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DataAPIError:
        """
        Add context to this error (fluent API).

        Usage:
            raise NetworkError("Failed").with_context(
                command="insertMany",
                url="https://db.example.com/api/json/v1/ks/movies",
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
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(DataAPIError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


class InvalidEndpointError(ConfigError):
    """The API endpoint cannot be turned into a request URL."""

    def __init__(self, url: str, *, cause: Exception | None = None):
        self.url = url
        super().__init__(f"Invalid URL '{url}'", cause=cause)
        self.context.url = url


# =============================================================================
# TRANSPORT ERRORS (Retryable unless terminal)
# =============================================================================


class TransportError(DataAPIError):
    """
    Failure to complete the HTTP exchange itself.

    Retryable by default: the same request, sent again after a delay, has a
    reasonable chance of succeeding.
    """

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class NetworkError(TransportError):
    """Connection refused, reset, DNS failure."""


class RequestTimeoutError(TransportError):
    """Connect, read or write timeout."""


class HttpStatusError(TransportError):
    """The server answered with a non-2xx status.

    Only ``408``, ``429`` and the transient ``5xx`` codes are worth retrying;
    anything else (``401``, ``404``...) is terminal on the first attempt.
    """

    RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})

    def __init__(
        self,
        status_code: int,
        body: str = "",
        *,
        retry_after: int | None = None,
        **kwargs: Any,
    ):
        self.status_code = status_code
        self.body = body
        preview = body[:200].replace("\n", " ") if body else ""
        message = f"HTTP {status_code}" + (f": {preview}" if preview else "")
        kwargs.setdefault("retryable", status_code in self.RETRYABLE_STATUSES)
        if status_code in (401, 403):
            kwargs.setdefault("category", ErrorCategory.AUTH)
        super().__init__(message, retry_after=retry_after, **kwargs)
        self.context.http_status = status_code


class RetryExhaustedError(TransportError):
    """All attempts allowed by the retry policy failed. Terminal."""

    default_retryable = False

    def __init__(self, message: str, *, attempts: int, **kwargs: Any):
        self.attempts = attempts
        super().__init__(f"{message} (after {attempts} attempt(s))", **kwargs)
        self.context.attempts = attempts


# =============================================================================
# APPLICATION ERRORS
# =============================================================================


class DataAPIResponseError(DataAPIError):
    """
    The Data API answered with one or more structured errors.

    Never retried: the request reached the service and was rejected. The
    error carries every ``ExecutionInfo`` involved (one per command; bulk
    operations may aggregate several) so the failing call can be replayed.

    Examples:
        >>> err = DataAPIResponseError(execution_infos=[info])  # doctest: +SKIP
        >>> err.error_code                                       # doctest: +SKIP
        'DOCUMENT_ALREADY_EXISTS'
    """

    default_category = ErrorCategory.APPLICATION
    default_retryable = False

    def __init__(self, execution_infos: list[ExecutionInfo], **kwargs: Any):
        self.execution_infos = list(execution_infos)
        self.errors: list[DataAPIErrorDescriptor] = []
        for info in self.execution_infos:
            if info.api_response is not None and info.api_response.errors:
                self.errors.extend(info.api_response.errors)
        super().__init__(self._compose_message(), **kwargs)
        if self.execution_infos:
            first = self.execution_infos[0]
            self.context.command = first.command.name
            self.context.url = first.request_url
            self.context.request_id = first.request_id
            if first.http_response is not None:
                self.context.http_status = first.http_response.status_code

    def _compose_message(self) -> str:
        if not self.errors:
            return "Data API returned an error response"
        return "; ".join(str(descriptor) for descriptor in self.errors)

    @property
    def error_code(self) -> str | None:
        """Error code of the first reported error."""
        return self.errors[0].error_code if self.errors else None


# =============================================================================
# CLIENT-SIDE DATA ERRORS
# =============================================================================


class MappingError(DataAPIError):
    """The requested result shape does not match what the response contains."""

    default_category = ErrorCategory.MAPPING
    default_retryable = False


class SerializationError(DataAPIError):
    """A value cannot be encoded to, or decoded from, wire JSON."""

    default_category = ErrorCategory.SERIALIZATION
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, DataAPIError):
        return error.retryable
    retryable_types = (
        ConnectionError,
        ConnectionResetError,
        ConnectionRefusedError,
        BrokenPipeError,
    )
    return isinstance(error, retryable_types)


def get_retry_after(error: Exception) -> int | None:
    """Get retry delay from error, if specified."""
    if isinstance(error, DataAPIError):
        return error.retry_after
    return None


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, DataAPIError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.NETWORK
    if isinstance(error, (ValueError, TypeError)):
        return ErrorCategory.SERIALIZATION
    return ErrorCategory.UNKNOWN


__all__ = [
    # Category enum
    "ErrorCategory",
    # Context
    "ErrorContext",
    # Base
    "DataAPIError",
    # Config
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "InvalidEndpointError",
    # Transport
    "TransportError",
    "NetworkError",
    "RequestTimeoutError",
    "HttpStatusError",
    "RetryExhaustedError",
    # Application
    "DataAPIResponseError",
    # Client-side
    "MappingError",
    "SerializationError",
    # Utilities
    "is_retryable",
    "get_retry_after",
    "categorize_error",
]
