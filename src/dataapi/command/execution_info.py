"""
Execution record of one command.

Every ``run`` produces exactly one ``ExecutionInfo``: what was sent, where,
with which headers and serializer, what came back, and how long it took.
Observers receive it; ``DataAPIResponseError`` carries it so a failing call
can be reproduced.

Manifesto:
    - **One record per run:** Created inside ``run``, never shared between calls
    - **Immutable once built:** The builder is mutable, the record is frozen
    - **Success and failure alike:** ``error`` is set instead of raising early

Architecture:
    ::

        ExecutionInfoBuilder  (owned by one run)
          │  with_request_headers / with_request_url
          │  with_http_response / with_api_response / with_error
          ▼
        build() ──▶ ExecutionInfo (frozen)
                      ├──▶ ObserverNotifier ─▶ observers
                      └──▶ DataAPIResponseError.execution_infos

Examples:
    >>> builder = ExecutionInfo.builder(Command.create("findOne"), serializer)  # doctest: +SKIP
    >>> info = builder.with_request_url("https://db/api/json/v1/ks/c").build()  # doctest: +SKIP
    >>> info.command.name                                                       # doctest: +SKIP
    'findOne'

Tags:
    execution-info, diagnostics, observability, immutable, dataapi-core
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from dataapi.command.command import Command
from dataapi.command.response import ApiResponseHttp, DataAPIResponse
from dataapi.serdes.serializer import DataAPISerializer


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class ExecutionInfo:
    """
    Frozen snapshot of one command execution.

    Attributes:
        command: The command sent
        serializer: Serializer used to marshal the command and parse the reply
        request_id: Value of the ``X-Request-ID`` header
        request_headers: Outbound headers in send order (names may repeat)
        request_url: URL the command was posted to
        http_response: Raw HTTP outcome, None if no response was received
        api_response: Parsed response, None if parsing never happened
        error: Failure of this execution, None on success
        started_at / finished_at: UTC timestamps around the exchange
    """

    command: Command
    serializer: DataAPISerializer
    request_id: str | None
    request_headers: tuple[tuple[str, str], ...]
    request_url: str | None
    http_response: ApiResponseHttp | None
    api_response: DataAPIResponse | None
    error: Exception | None
    started_at: datetime
    finished_at: datetime

    @classmethod
    def builder(cls, command: Command, serializer: DataAPISerializer) -> ExecutionInfoBuilder:
        return ExecutionInfoBuilder(command, serializer)

    @property
    def duration_ms(self) -> float:
        return (self.finished_at - self.started_at).total_seconds() * 1000

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def header(self, name: str) -> str | None:
        """First value of request header ``name`` (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.request_headers:
            if key.lower() == lowered:
                return value
        return None

    def to_dict(self) -> dict[str, Any]:
        """Summary for logging; header values and bodies are left out."""
        result: dict[str, Any] = {
            "command": self.command.name,
            "request_id": self.request_id,
            "url": self.request_url,
            "duration_ms": round(self.duration_ms, 3),
            "succeeded": self.succeeded,
        }
        if self.http_response is not None:
            result["http_status"] = self.http_response.status_code
        if self.api_response is not None and self.api_response.errors:
            result["error_codes"] = [e.error_code for e in self.api_response.errors]
        if self.error is not None:
            result["error"] = f"{type(self.error).__name__}: {self.error}"
        return result


class ExecutionInfoBuilder:
    """Collects the pieces of an ``ExecutionInfo`` while a command runs."""

    def __init__(self, command: Command, serializer: DataAPISerializer):
        self.command = command
        self.serializer = serializer
        self.request_id: str | None = None
        self.request_headers: list[tuple[str, str]] = []
        self.request_url: str | None = None
        self.http_response: ApiResponseHttp | None = None
        self.api_response: DataAPIResponse | None = None
        self.error: Exception | None = None
        self.started_at = utcnow()

    def with_request_id(self, request_id: str) -> ExecutionInfoBuilder:
        self.request_id = request_id
        return self

    def with_request_headers(self, headers: list[tuple[str, str]]) -> ExecutionInfoBuilder:
        self.request_headers = list(headers)
        return self

    def with_request_url(self, url: str) -> ExecutionInfoBuilder:
        self.request_url = url
        return self

    def with_http_response(self, response: ApiResponseHttp) -> ExecutionInfoBuilder:
        self.http_response = response
        return self

    def with_api_response(self, response: DataAPIResponse) -> ExecutionInfoBuilder:
        self.api_response = response
        return self

    def with_error(self, error: Exception) -> ExecutionInfoBuilder:
        self.error = error
        return self

    def build(self) -> ExecutionInfo:
        return ExecutionInfo(
            command=self.command,
            serializer=self.serializer,
            request_id=self.request_id,
            request_headers=tuple(self.request_headers),
            request_url=self.request_url,
            http_response=self.http_response,
            api_response=self.api_response,
            error=self.error,
            started_at=self.started_at,
            finished_at=utcnow(),
        )


__all__ = ["ExecutionInfo", "ExecutionInfoBuilder"]
