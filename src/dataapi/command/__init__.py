"""Command execution -- options, runner, responses, execution records, observers.

WHY
───
Every operation of the client, from ``insertOne`` to ``createCollection``,
boils down to the same exchange: one JSON command posted to one URL. This
package does that exchange once, properly, for all of them.

ARCHITECTURE
────────────
::

    Command + CommandOptions
      │
      ▼
    CommandRunner.run()
      ├── RetryHttpClient    (dataapi.http)
      ├── DataAPISerializer  (dataapi.serdes)
      ├── DataAPIResponse    ─ data / status / errors
      ├── ExecutionInfo      ─ frozen record of the run
      └── ObserverNotifier   ─ thread-pool fan-out to observers
"""

from dataapi.command.command import Command
from dataapi.command.execution_info import ExecutionInfo, ExecutionInfoBuilder
from dataapi.command.observers import (
    CommandObserver,
    LoggingCommandObserver,
    ObserverNotifier,
    SynchronousNotifier,
    resolve_observers,
)
from dataapi.command.options import (
    AWSEmbeddingHeadersProvider,
    CommandOptions,
    EmbeddingAPIKeyHeaderProvider,
    EmbeddingHeadersProvider,
)
from dataapi.command.response import (
    ApiResponseHttp,
    DataAPIData,
    DataAPIErrorDescriptor,
    DataAPIResponse,
)
from dataapi.command.runner import CommandRunner, DataAPICommandRunner

__all__ = [
    "AWSEmbeddingHeadersProvider",
    "ApiResponseHttp",
    "Command",
    "CommandObserver",
    "CommandOptions",
    "CommandRunner",
    "DataAPICommandRunner",
    "DataAPIData",
    "DataAPIErrorDescriptor",
    "DataAPIResponse",
    "EmbeddingAPIKeyHeaderProvider",
    "EmbeddingHeadersProvider",
    "ExecutionInfo",
    "ExecutionInfoBuilder",
    "LoggingCommandObserver",
    "ObserverNotifier",
    "SynchronousNotifier",
    "resolve_observers",
]
