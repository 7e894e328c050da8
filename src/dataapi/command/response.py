"""Parsed Data API responses.

Every response is an object with three optional members::

    {"data": {...}, "status": {...}, "errors": [...]}

Any entry in ``errors`` makes the whole call a failure, whatever else the
response carries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dataapi.core.errors import MappingError
from dataapi.http.client import ApiResponseHttp
from dataapi.serdes.serializer import DataAPISerializer


@dataclass
class DataAPIErrorDescriptor:
    """One structured error reported by the Data API."""

    error_code: str | None = field(default=None, metadata={"alias": "errorCode"})
    message: str | None = None
    family: str | None = None
    scope: str | None = None
    title: str | None = None
    id: str | None = None
    exception_class: str | None = field(default=None, metadata={"alias": "exceptionClass"})

    def __str__(self) -> str:
        text = self.message or self.title or "Unknown error"
        return f"[{self.error_code}] {text}" if self.error_code else text


@dataclass
class DataAPIData:
    """The ``data`` member: one document, a page of documents, or both absent."""

    document: dict[str, Any] | None = None
    documents: list[dict[str, Any]] | None = None
    next_page_state: str | None = field(default=None, metadata={"alias": "nextPageState"})


@dataclass
class DataAPIResponse:
    """Top-level Data API response."""

    data: DataAPIData | None = None
    status: dict[str, Any] | None = None
    errors: list[DataAPIErrorDescriptor] | None = None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def warnings(self) -> list[Any]:
        """Entries of ``status.warnings``; plain strings or error-shaped objects."""
        if not self.status:
            return []
        return list(self.status.get("warnings") or [])

    def get_status_key_as(
        self, key: str, target: Any, serializer: DataAPISerializer | None = None
    ) -> Any:
        """Decode ``status[key]`` into ``target``.

        Raises:
            MappingError: if ``status`` has no such key
        """
        if not self.status or key not in self.status:
            raise MappingError(f"Key '{key}' is not present in the response status")
        serializer = serializer or DataAPISerializer()
        return serializer.convert(self.status[key], target)


__all__ = [
    "ApiResponseHttp",
    "DataAPIData",
    "DataAPIErrorDescriptor",
    "DataAPIResponse",
]
