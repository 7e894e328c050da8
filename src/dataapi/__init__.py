"""dataapi -- request-execution core of a Data API database client.

Turns typed operations into single JSON commands, posts them with bounded
retries, and maps replies to structured results or structured errors.

Quick start::

    from dataapi import Command, CommandOptions, DataAPICommandRunner, HttpClientOptions

    options = CommandOptions(token="AstraCS:...").with_http_client_options(HttpClientOptions())
    with DataAPICommandRunner(endpoint, "default_keyspace", "movies", options=options) as runner:
        runner.run(Command.create("insertOne").with_document({"_id": "1"}))
"""

__version__ = "0.1.0"

from dataapi.command import (  # noqa: E402
    Command,
    CommandOptions,
    DataAPICommandRunner,
    DataAPIResponse,
    ExecutionInfo,
    LoggingCommandObserver,
)
from dataapi.core.errors import DataAPIError, DataAPIResponseError  # noqa: E402
from dataapi.core.settings import DataAPISettings  # noqa: E402
from dataapi.http.options import HttpClientOptions  # noqa: E402
from dataapi.serdes import DataAPISerializer, SerdesOptions  # noqa: E402

__all__ = [
    "Command",
    "CommandOptions",
    "DataAPICommandRunner",
    "DataAPIError",
    "DataAPIResponse",
    "DataAPIResponseError",
    "DataAPISerializer",
    "DataAPISettings",
    "ExecutionInfo",
    "HttpClientOptions",
    "LoggingCommandObserver",
    "SerdesOptions",
    "__version__",
]
