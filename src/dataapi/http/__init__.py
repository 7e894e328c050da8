"""Retrying HTTP transport for Data API commands."""

from dataapi.http.client import ApiResponseHttp, RetryHttpClient
from dataapi.http.options import Caller, HttpClientOptions, HttpProxy
from dataapi.http.retry import (
    ConstantBackoff,
    RetryContext,
    RetryStrategy,
)

__all__ = [
    "ApiResponseHttp",
    "Caller",
    "ConstantBackoff",
    "HttpClientOptions",
    "HttpProxy",
    "RetryContext",
    "RetryHttpClient",
    "RetryStrategy",
]
