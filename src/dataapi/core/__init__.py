"""Data API Core -- errors, results, logging, settings and domain value types.

Architecture::

    errors.py     Structured error hierarchy (DataAPIError, TransportError...)
    result.py     Result[T] envelope (Ok / Err / try_result)
    logging.py    Structured logging (structlog)
    settings.py   DataAPISettings (pydantic-settings, DATAAPI_ prefix)
    types.py      ObjectId, Float32, DataAPIVector, TableDuration, enums

Nothing in this package imports from ``dataapi.command`` or ``dataapi.http``.
"""

from dataapi.core.errors import (
    ConfigError,
    DataAPIError,
    DataAPIResponseError,
    ErrorCategory,
    ErrorContext,
    HttpStatusError,
    InvalidConfigError,
    InvalidEndpointError,
    MappingError,
    MissingConfigError,
    NetworkError,
    RequestTimeoutError,
    RetryExhaustedError,
    SerializationError,
    TransportError,
    categorize_error,
    is_retryable,
)
from dataapi.core.result import Err, Ok, Result, collect_results, partition_results, try_result
from dataapi.core.types import (
    ColumnType,
    DataAPIVector,
    Float32,
    ObjectId,
    SimilarityMetric,
    TableDuration,
)

__all__ = [
    "ColumnType",
    "ConfigError",
    "DataAPIError",
    "DataAPIResponseError",
    "DataAPIVector",
    "Err",
    "ErrorCategory",
    "ErrorContext",
    "Float32",
    "HttpStatusError",
    "InvalidConfigError",
    "InvalidEndpointError",
    "MappingError",
    "MissingConfigError",
    "NetworkError",
    "ObjectId",
    "Ok",
    "RequestTimeoutError",
    "Result",
    "RetryExhaustedError",
    "SerializationError",
    "SimilarityMetric",
    "TableDuration",
    "TransportError",
    "categorize_error",
    "collect_results",
    "is_retryable",
    "partition_results",
    "try_result",
]
