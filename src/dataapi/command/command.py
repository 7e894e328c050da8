"""Wire commands: a name plus a JSON-compatible payload."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class Command:
    """
    One Data API operation, serialized as ``{name: payload}``.

    Immutable: every ``with_*`` / ``append`` call returns a new command. The
    payload is deep-copied when the command is built and again by ``to_dict``,
    so later changes to the caller's dicts never reach it.
    Two commands with the same name and payload compare equal.

    Examples:
        >>> cmd = Command.create("insertOne").with_document({"_id": "1", "text": "hello"})
        >>> cmd.to_dict()
        {'insertOne': {'document': {'_id': '1', 'text': 'hello'}}}
    """

    name: str
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Command name must not be empty")
        object.__setattr__(self, "payload", MappingProxyType(copy.deepcopy(dict(self.payload))))

    @classmethod
    def create(cls, name: str) -> Command:
        return cls(name=name)

    def append(self, key: str, value: Any) -> Command:
        """New command with ``key`` set in the payload; ``None`` leaves it unchanged."""
        if value is None:
            return self
        return Command(self.name, {**self.payload, key: value})

    def with_filter(self, filter: Mapping[str, Any] | None) -> Command:
        return self.append("filter", filter)

    def with_sort(self, sort: Mapping[str, Any] | None) -> Command:
        return self.append("sort", sort)

    def with_projection(self, projection: Mapping[str, Any] | None) -> Command:
        return self.append("projection", projection)

    def with_document(self, document: Any) -> Command:
        return self.append("document", document)

    def with_documents(self, documents: list[Any] | None) -> Command:
        return self.append("documents", documents)

    def with_update(self, update: Mapping[str, Any] | None) -> Command:
        return self.append("update", update)

    def with_options(self, options: Mapping[str, Any] | None) -> Command:
        """Merge ``options`` into the payload's ``options`` block."""
        if not options:
            return self
        merged = {**self.payload.get("options", {}), **options}
        return self.append("options", merged)

    def to_dict(self) -> dict[str, Any]:
        return {self.name: copy.deepcopy(dict(self.payload))}

    def __hash__(self) -> int:
        # payload values may be unhashable
        return hash(self.name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Command):
            return NotImplemented
        return self.name == other.name and dict(self.payload) == dict(other.payload)


__all__ = ["Command"]
