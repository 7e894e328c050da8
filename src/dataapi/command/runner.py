"""
Command runner: one Data API command, end to end.

Manifesto:
    A command is a single HTTP POST, but getting it right means resolving
    layered options, sending the right auth headers, retrying only what is
    transient, telling application errors apart from transport errors, and
    letting observers see every execution without slowing the caller.

    - **Fail fast on configuration:** No transport or a bad URL raises before
      anything is sent
    - **Structured failures:** Errors returned by the Data API become
      ``DataAPIResponseError`` carrying the full ``ExecutionInfo``
    - **Never retry rejections:** Only the transport retries, and only
      transient failures
    - **Observers always run:** On success and on failure, off the caller's
      thread, with an explicit ``drain()`` join point

Architecture:
    ::

        run(command, options)
          │
          ├── 1. resolve transport   shared RetryHttpClient | one-off for override
          ├── 2. merge options       token, headers, observers (base ∪ override)
          ├── 3. resolve serializer  shared | one-off for override serdes options
          ├── 4. marshall            {"<name>": {...}}
          ├── 5. headers             content type, request id, user agent, auth,
          │                          embedding (base then override), db, admin
          ├── 6. execute             RetryHttpClient (bounded retries)
          ├── 7. parse               DataAPIResponse; errors → DataAPIResponseError
          ├── 8. warnings            logged, one event each
          └── 9. notify              ObserverNotifier (finally, success or failure)

Examples:
    >>> runner = DataAPICommandRunner(
    ...     "https://db-id-region.apps.astra.datastax.com",
    ...     keyspace="default_keyspace",
    ...     collection="movies",
    ...     options=CommandOptions(token="AstraCS:...").with_http_client_options(HttpClientOptions()),
    ... )
    >>> cmd = Command.create("insertOne").with_document({"_id": "1", "text": "hello"})
    >>> runner.run(cmd).status["insertedIds"]          # doctest: +SKIP
    ['1']

Guardrails:
    ❌ DON'T: Catch ``DataAPIResponseError`` and call ``run`` again
    ✅ DO: Read ``error.errors`` / ``error.execution_infos`` and fix the command

    ❌ DON'T: Exit the process right after ``run`` when observers matter
    ✅ DO: Call ``runner.drain()`` or ``runner.close()``

Tags:
    command-runner, http, retry, observers, execution-info, dataapi-core
"""

from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import httpx

from dataapi.command.command import Command
from dataapi.command.execution_info import ExecutionInfo, ExecutionInfoBuilder
from dataapi.command.observers import ObserverNotifier, SynchronousNotifier
from dataapi.command.options import CommandOptions
from dataapi.command.response import DataAPIResponse
from dataapi.core.errors import (
    DataAPIError,
    DataAPIResponseError,
    ErrorContext,
    InvalidEndpointError,
    MappingError,
    MissingConfigError,
    SerializationError,
)
from dataapi.core.logging import LogContext, get_logger
from dataapi.core.result import Err, Ok, Result
from dataapi.http.client import ApiResponseHttp, RetryHttpClient
from dataapi.serdes.serializer import DataAPISerializer, loads

if TYPE_CHECKING:
    from dataapi.core.settings import DataAPISettings

logger = get_logger(__name__)

CONTENT_TYPE_JSON = "application/json"

HEADER_CONTENT_TYPE = "Content-Type"
HEADER_ACCEPT = "Accept"
HEADER_USER_AGENT = "User-Agent"
HEADER_REQUESTED_WITH = "X-Requested-With"
HEADER_REQUEST_ID = "X-Request-ID"
HEADER_TOKEN = "Token"
HEADER_AUTHORIZATION = "Authorization"


class CommandRunner(ABC):
    """
    Executes commands against the URL given by ``api_endpoint``.

    The shared ``RetryHttpClient`` and ``DataAPISerializer`` are created on
    first use, under a lock, and reused by every call that does not override
    their options.

    Args:
        options: Base options of every command run by this runner
        notifier: Observer notifier (default: a 4-thread ``ObserverNotifier``)
    """

    def __init__(
        self,
        options: CommandOptions | None = None,
        *,
        notifier: ObserverNotifier | SynchronousNotifier | None = None,
    ):
        self.options = options or CommandOptions()
        self.notifier = notifier or ObserverNotifier()
        self._http_client: RetryHttpClient | None = None
        self._serializer: DataAPISerializer | None = None
        self._lock = threading.Lock()

    @property
    @abstractmethod
    def api_endpoint(self) -> str:
        """URL commands are posted to."""

    # ── Resolution ───────────────────────────────────────────────

    @property
    def serializer(self) -> DataAPISerializer:
        with self._lock:
            if self._serializer is None:
                self._serializer = DataAPISerializer(self.options.serdes_options)
            return self._serializer

    def _shared_http_client(self) -> RetryHttpClient:
        with self._lock:
            if self._http_client is None:
                if self.options.http_client_options is None:
                    raise MissingConfigError(
                        "http_client_options",
                        "HttpClientOptions are required to run commands",
                    )
                self._http_client = RetryHttpClient(self.options.http_client_options)
            return self._http_client

    def _resolve_http_client(self, override: CommandOptions | None) -> tuple[RetryHttpClient, bool]:
        """Transport for one call, and whether it is a one-off to close afterwards."""
        local = override.http_client_options if override else None
        if local is not None and local != self.options.http_client_options:
            return RetryHttpClient(local), True
        return self._shared_http_client(), False

    def _resolve_serializer(self, override: CommandOptions | None) -> DataAPISerializer:
        local = override.serdes_options if override else None
        if local is not None and local != self.options.serdes_options:
            return DataAPISerializer(local)
        return self.serializer

    def _request_url(self) -> str:
        url = self.api_endpoint
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise InvalidEndpointError(str(url), cause=e) from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise InvalidEndpointError(str(url))
        return url

    def _build_headers(
        self,
        http_client: RetryHttpClient,
        effective: CommandOptions,
        override: CommandOptions | None,
        request_id: str,
    ) -> list[tuple[str, str]]:
        user_agent = http_client.user_agent
        headers = [
            (HEADER_CONTENT_TYPE, CONTENT_TYPE_JSON),
            (HEADER_ACCEPT, CONTENT_TYPE_JSON),
            (HEADER_USER_AGENT, user_agent),
            (HEADER_REQUESTED_WITH, user_agent),
            (HEADER_REQUEST_ID, request_id),
        ]
        if effective.token:
            headers.append((HEADER_TOKEN, effective.token))
            headers.append((HEADER_AUTHORIZATION, f"Bearer {effective.token}"))

        # both layers of embedding headers are sent, base first
        if self.options.embedding_auth_provider is not None:
            headers.extend(self.options.embedding_auth_provider.get_headers().items())
        headers.extend(effective.database_additional_headers.items())
        headers.extend(effective.admin_additional_headers.items())
        if override is not None and override.embedding_auth_provider is not None:
            headers.extend(override.embedding_auth_provider.get_headers().items())
        return headers

    # ── Execution ────────────────────────────────────────────────

    def run(self, command: Command, options: CommandOptions | None = None) -> DataAPIResponse:
        """Execute ``command`` and return the parsed response.

        Raises:
            MissingConfigError: no transport settings at any layer
            InvalidEndpointError: ``api_endpoint`` is not an http(s) URL
            TransportError: the HTTP exchange failed (after retries)
            DataAPIResponseError: the Data API reported errors
        """
        response, _ = self._execute(command, options)
        return response

    def run_result(
        self, command: Command, options: CommandOptions | None = None
    ) -> Result[DataAPIResponse]:
        """Like ``run``, with failures returned as ``Err`` instead of raised."""
        try:
            return Ok(self.run(command, options))
        except DataAPIError as e:
            return Err(e)

    def run_as(self, command: Command, target: Any, options: CommandOptions | None = None) -> Any:
        """Execute ``command`` and decode its main payload into ``target``.

        The payload is ``data.document``, else ``data.documents``, else
        ``status`` when the response has no ``data``.

        Raises:
            MappingError: ``data`` is present but holds no document
        """
        _, tree = self._execute(command, options)
        serializer = self._resolve_serializer(options)
        data = tree.get("data")
        if data is not None:
            if data.get("document") is not None:
                payload = data["document"]
            elif data.get("documents") is not None:
                payload = data["documents"]
            else:
                name = getattr(target, "__name__", repr(target))
                raise MappingError(f"Cannot map response into '{name}': no documents returned")
        else:
            payload = tree.get("status")
        return serializer.decode(payload, target)

    def _execute(
        self, command: Command, override: CommandOptions | None
    ) -> tuple[DataAPIResponse, dict[str, Any]]:
        http_client, one_off = self._resolve_http_client(override)
        effective = self.options.merge(override)
        serializer = self._resolve_serializer(override)
        builder = ExecutionInfo.builder(command, serializer)

        try:
            url = self._request_url()
            body = serializer.marshall(command.to_dict())
            request_id = str(uuid.uuid4())
            headers = self._build_headers(http_client, effective, override, request_id)
            builder.with_request_id(request_id).with_request_headers(headers).with_request_url(url)

            logger.debug("command.sent", command=command.name, url=url, request_id=request_id)
            with LogContext(request_id=request_id, command=command.name):
                http_response = http_client.execute(http_client.build_request(url, body, headers))
            builder.with_http_response(http_response)

            response, tree = self._parse(serializer, http_response)
            builder.with_api_response(response)
            if response.has_errors:
                raise DataAPIResponseError([builder.build()])

            for warning in response.warnings:
                logger.warning(
                    "command.warning",
                    command=command.name,
                    request_id=request_id,
                    warning=warning,
                )
            return response, tree
        except Exception as e:
            if isinstance(e, DataAPIError) and e.context.command is None:
                e.with_context(command=command.name, request_id=builder.request_id)
            builder.with_error(e)
            raise
        finally:
            if one_off:
                http_client.close()
            self._notify(effective, builder)

    @staticmethod
    def _parse(
        serializer: DataAPISerializer, http_response: ApiResponseHttp
    ) -> tuple[DataAPIResponse, dict[str, Any]]:
        tree = loads(http_response.body)
        if not isinstance(tree, dict):
            raise SerializationError(
                "Data API response is not a JSON object",
                context=ErrorContext(http_status=http_response.status_code),
            )
        return serializer.decode(tree, DataAPIResponse), tree

    def _notify(self, effective: CommandOptions, builder: ExecutionInfoBuilder) -> None:
        if not effective.observers:
            return
        info = builder.build()
        try:
            self.notifier.notify(effective.observers, info)
        except Exception as e:
            logger.warning(
                "observer.failed",
                observer=",".join(effective.observers),
                command=info.command.name,
                request_id=info.request_id,
                error=str(e),
            )

    # ── Lifecycle ────────────────────────────────────────────────

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for pending observer notifications."""
        return self.notifier.drain(timeout)

    def close(self) -> None:
        """Drain observers and release the shared HTTP client."""
        self.notifier.close()
        with self._lock:
            if self._http_client is not None:
                self._http_client.close()
                self._http_client = None

    def __enter__(self) -> CommandRunner:
        return self

    def __exit__(self, *args) -> None:
        self.close()


class DataAPICommandRunner(CommandRunner):
    """
    Runner for ``{endpoint}/api/json/{version}[/{keyspace}[/{collection}]]``.

    A database-level runner (no collection) sends keyspace commands such as
    ``createCollection``; a collection-level runner sends document commands.

    Raises:
        InvalidEndpointError: at construction, if ``endpoint`` is not an http(s) URL
    """

    def __init__(
        self,
        endpoint: str,
        keyspace: str | None = None,
        collection: str | None = None,
        api_version: str = "v1",
        options: CommandOptions | None = None,
        *,
        notifier: ObserverNotifier | SynchronousNotifier | None = None,
    ):
        super().__init__(options, notifier=notifier)
        self.endpoint = endpoint
        self.keyspace = keyspace
        self.collection = collection
        self.api_version = api_version
        if collection and not keyspace:
            raise InvalidEndpointError(endpoint)
        self._api_endpoint = self._compose(endpoint)
        self._request_url()

    def _compose(self, endpoint: str) -> str:
        parts = [endpoint.rstrip("/"), "api", "json", self.api_version]
        if self.keyspace:
            parts.append(self.keyspace)
        if self.collection:
            parts.append(self.collection)
        return "/".join(parts)

    @property
    def api_endpoint(self) -> str:
        return self._api_endpoint

    @classmethod
    def from_settings(
        cls, settings: DataAPISettings, collection: str | None = None
    ) -> DataAPICommandRunner:
        """Runner configured from ``DataAPISettings``.

        Raises:
            MissingConfigError: if ``settings.endpoint`` is not set
        """
        if not settings.endpoint:
            raise MissingConfigError("endpoint")
        return cls(
            settings.endpoint,
            keyspace=settings.keyspace,
            collection=collection,
            api_version=settings.api_version,
            options=CommandOptions.from_settings(settings),
        )

    def __repr__(self) -> str:
        return f"DataAPICommandRunner({self._api_endpoint!r})"


__all__ = [
    "CommandRunner",
    "DataAPICommandRunner",
    "HEADER_AUTHORIZATION",
    "HEADER_REQUEST_ID",
    "HEADER_TOKEN",
]
