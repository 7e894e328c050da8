"""
Shared pytest fixtures and configuration for dataapi-core tests.

This module provides:
- A scriptable fake Data API served through ``httpx.MockTransport``
- A runner factory wired to the fake API with synchronous observer delivery
- Recording observer and logger doubles

Usage:
    def test_insert(fake_api, make_runner):
        fake_api.respond({"status": {"insertedIds": ["1"]}})
        runner = make_runner()
        ...
"""

import json
import sys
from pathlib import Path
from typing import Any, Generator

import httpx
import pytest

# Ensure dataapi package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dataapi.command import (
    CommandOptions,
    DataAPICommandRunner,
    SynchronousNotifier,
)
from dataapi.http import HttpClientOptions

ENDPOINT = "https://db.example.com"


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark every test without an explicit marker as a unit test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Doubles
# =============================================================================


class FakeDataAPI:
    """
    ``httpx.MockTransport`` handler that replays scripted outcomes.

    Outcomes are consumed in order; the last one is repeated once the script
    runs out. An outcome is a dict (sent as a 200 JSON body), an
    ``httpx.Response``, or an exception to raise.
    """

    def __init__(self) -> None:
        self.outcomes: list[Any] = []
        self.requests: list[httpx.Request] = []

    def respond(self, *outcomes: Any) -> "FakeDataAPI":
        self.outcomes.extend(outcomes)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.outcomes:
            return httpx.Response(200, json={"status": {"ok": 1}})
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, httpx.Response):
            return outcome
        return httpx.Response(200, json=outcome)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_body(self) -> Any:
        return json.loads(self.last_request.content)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class RecordingObserver:
    """Observer that keeps every ExecutionInfo it receives."""

    def __init__(self) -> None:
        self.infos: list[Any] = []

    def on_command(self, info: Any) -> None:
        self.infos.append(info)


class RecordingLogger:
    """Stand-in for a structlog logger; keeps (level, event, fields) triples."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def _record(self, level: str):
        def log(event: str, **fields: Any) -> None:
            self.records.append((level, event, fields))
        return log

    def __getattr__(self, level: str):
        return self._record(level)

    def events(self, level: str | None = None) -> list[str]:
        return [event for lvl, event, _ in self.records if level is None or lvl == level]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_api() -> FakeDataAPI:
    return FakeDataAPI()


@pytest.fixture
def make_runner(fake_api: FakeDataAPI) -> Generator[Any, None, None]:
    """
    Factory for collection-level runners talking to ``fake_api``.

    Retries have no delay. Observers are delivered synchronously, so a test
    can assert on them right after ``run`` returns.
    """
    runners: list[DataAPICommandRunner] = []

    def factory(
        options: CommandOptions | None = None,
        *,
        retry_count: int = 3,
        keyspace: str | None = "default_keyspace",
        collection: str | None = "movies",
    ) -> DataAPICommandRunner:
        options = options or CommandOptions()
        if options.http_client_options is None:
            options.with_http_client_options(
                HttpClientOptions(
                    retry_count=retry_count,
                    retry_delay=0,
                    transport=fake_api.transport(),
                )
            )
        runner = DataAPICommandRunner(
            ENDPOINT,
            keyspace=keyspace,
            collection=collection,
            options=options,
            notifier=SynchronousNotifier(),
        )
        runners.append(runner)
        return runner

    yield factory
    for runner in runners:
        runner.close()


@pytest.fixture
def recording_observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()
