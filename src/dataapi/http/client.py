"""
Retrying HTTP transport.

``RetryHttpClient`` wraps one ``httpx.Client`` and executes a prepared
request, retrying transient failures under a ``ConstantBackoff`` built from
``HttpClientOptions``. The client holds no per-request state, so a single
instance is shared by every command of a runner.

Failure mapping:

====================================  =====================================
httpx outcome                         raised
====================================  =====================================
``httpx.TimeoutException``            ``RequestTimeoutError`` (retryable)
other ``httpx.TransportError``        ``NetworkError`` (retryable)
non-2xx status                        ``HttpStatusError`` (408/429/5xx retry)
retryable failure on last attempt     ``RetryExhaustedError`` (terminal)
====================================  =====================================
"""

from __future__ import annotations

import platform
from dataclasses import dataclass, field
from functools import partial

import httpx

from dataapi import __version__
from dataapi.core.errors import (
    ErrorContext,
    HttpStatusError,
    NetworkError,
    RequestTimeoutError,
    RetryExhaustedError,
    TransportError,
)
from dataapi.core.logging import get_logger
from dataapi.http.options import HttpClientOptions
from dataapi.http.retry import ConstantBackoff, RetryContext

logger = get_logger(__name__)

CLIENT_NAME = "dataapi-core"


@dataclass(frozen=True)
class ApiResponseHttp:
    """Raw HTTP outcome of one command."""

    status_code: int
    body: str
    headers: dict[str, str] = field(default_factory=dict)


def _retry_after(response: httpx.Response) -> int | None:
    value = response.headers.get("Retry-After")
    if value and value.isdigit():
        return int(value)
    return None


class RetryHttpClient:
    """
    Executes HTTP requests with bounded retries.

    Example:
        >>> client = RetryHttpClient(HttpClientOptions(retry_count=3, retry_delay=0.1))
        >>> request = client.build_request(url, body, headers)     # doctest: +SKIP
        >>> client.execute(request).status_code                     # doctest: +SKIP
        200
    """

    def __init__(self, options: HttpClientOptions):
        self.options = options
        self.timeout = httpx.Timeout(options.response_timeout, connect=options.connect_timeout)
        self._client = httpx.Client(
            timeout=self.timeout,
            follow_redirects=options.follow_redirects,
            proxy=options.proxy.url if options.proxy else None,
            transport=options.transport,
        )

    @property
    def user_agent(self) -> str:
        """Callers first, then this client, then the interpreter."""
        parts = [str(caller) for caller in self.options.callers]
        parts.append(f"{CLIENT_NAME}/{__version__}")
        parts.append(f"python/{platform.python_version()}")
        return " ".join(parts)

    def build_request(
        self, url: str, body: str, headers: list[tuple[str, str]]
    ) -> httpx.Request:
        """Prepare a POST carrying ``body`` with the configured response timeout.

        ``headers`` is a list of pairs so the same header may appear twice.
        """
        return self._client.build_request(
            "POST",
            url,
            content=body.encode("utf-8"),
            headers=httpx.Headers(headers),
            timeout=self.timeout,
        )

    def execute(self, request: httpx.Request) -> ApiResponseHttp:
        """Send ``request``, retrying transient failures.

        Raises:
            RetryExhaustedError: the last allowed attempt failed transiently
            HttpStatusError: a non-retryable status was returned
        """
        context = RetryContext(
            ConstantBackoff(max_attempts=self.options.retry_count, delay=self.options.retry_delay),
            on_retry=partial(self._log_retry, request),
        )
        try:
            return context.run(self._send_once, request)
        except TransportError as e:
            if not e.retryable:
                raise
            raise RetryExhaustedError(
                f"{request.method} {request.url} failed: {e.message}",
                attempts=context.attempts,
                context=ErrorContext(
                    url=str(request.url),
                    http_status=e.context.http_status,
                    request_id=request.headers.get("X-Request-ID"),
                ),
                cause=e,
            ) from e

    def _send_once(self, request: httpx.Request) -> ApiResponseHttp:
        try:
            response = self._client.send(request)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"Timed out: {e}", cause=e) from e
        except httpx.TransportError as e:
            raise NetworkError(f"Connection failed: {e}", cause=e) from e

        body = response.text
        if not response.is_success:
            raise HttpStatusError(response.status_code, body, retry_after=_retry_after(response))
        return ApiResponseHttp(
            status_code=response.status_code,
            body=body,
            headers=dict(response.headers),
        )

    def _log_retry(
        self, request: httpx.Request, attempt: int, error: Exception, delay: float
    ) -> None:
        logger.warning(
            "http.retry",
            url=str(request.url),
            attempt=attempt,
            max_attempts=self.options.retry_count,
            delay=delay,
            error=str(error),
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RetryHttpClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()


__all__ = ["ApiResponseHttp", "RetryHttpClient", "CLIENT_NAME"]
