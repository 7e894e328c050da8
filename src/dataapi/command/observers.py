"""
Command observers and their notification.

WHY
───
Logging, metrics and auditing all want to see every command, whether it
succeeded or not, without slowing down the caller or being able to break it.
Observers are registered by name on ``CommandOptions``; after each ``run``
the finalized ``ExecutionInfo`` is handed to every resolved observer on a
worker pool.

ARCHITECTURE
────────────
::

    base observers {A, B}      override observers {B', C}
              │                         │
              └──── resolve_observers ──┘
                          │
                          ▼
                 {A, B, C}   (base wins: B' is dropped)
                          │
                          ▼
    ObserverNotifier.notify(observers, info)
      ├── pool.submit(A.on_command, info)  ─┐
      ├── pool.submit(B.on_command, info)   ├─ failures logged, never raised
      └── pool.submit(C.on_command, info)  ─┘
                          │
                          ▼
                 drain(timeout) ─ explicit join point

``SynchronousNotifier`` delivers inline on the calling thread; tests use it
to assert delivery without waiting.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, Any, Callable, Mapping, Protocol, Union, runtime_checkable

from dataapi.core.logging import get_logger

if TYPE_CHECKING:
    from dataapi.command.execution_info import ExecutionInfo

logger = get_logger(__name__)


@runtime_checkable
class CommandObserver(Protocol):
    """Receives the ``ExecutionInfo`` of every command it is registered for."""

    def on_command(self, info: ExecutionInfo) -> None: ...


Observer = Union[CommandObserver, Callable[["ExecutionInfo"], None]]


class LoggingCommandObserver:
    """Logs one structured event per executed command."""

    def __init__(self, level: str = "debug", logger_name: str = "dataapi.commands"):
        self.level = level.lower()
        self._log = get_logger(logger_name)

    def on_command(self, info: ExecutionInfo) -> None:
        if info.error is not None:
            self._log.warning("command.failed", **info.to_dict())
            return
        getattr(self._log, self.level)("command.executed", **info.to_dict())


def resolve_observers(
    base: Mapping[str, Observer] | None,
    override: Mapping[str, Observer] | None,
) -> dict[str, Observer]:
    """Base observers first, then override observers under names not yet taken."""
    resolved = dict(base or {})
    for name, observer in (override or {}).items():
        resolved.setdefault(name, observer)
    return resolved


def deliver(name: str, observer: Observer, info: ExecutionInfo) -> None:
    """Call one observer; its failure is logged and goes no further."""
    try:
        if isinstance(observer, CommandObserver):
            observer.on_command(info)
        else:
            observer(info)
    except Exception as e:
        logger.warning(
            "observer.failed",
            observer=name,
            command=info.command.name,
            request_id=info.request_id,
            error=str(e),
        )


class ObserverNotifier:
    """
    Fans execution infos out to observers on a bounded thread pool.

    The pool is started on first use and started again after ``close()``,
    so a closed runner can keep notifying.

    Args:
        max_workers: Pool size (default: 4)
    """

    def __init__(self, max_workers: int = 4):
        self.max_workers = max_workers
        self._pool: ThreadPoolExecutor | None = None
        self._pending: set[Future[Any]] = set()
        self._lock = threading.Lock()

    def _executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="dataapi-observer"
                )
            return self._pool

    def notify(self, observers: Mapping[str, Observer], info: ExecutionInfo) -> list[Future[Any]]:
        """Schedule one delivery per observer and return without waiting."""
        futures = []
        for name, observer in observers.items():
            future = self._executor().submit(deliver, name, observer, info)
            with self._lock:
                self._pending.add(future)
            future.add_done_callback(self._discard)
            futures.append(future)
        return futures

    def _discard(self, future: Future[Any]) -> None:
        with self._lock:
            self._pending.discard(future)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for scheduled deliveries. True if none is left running."""
        with self._lock:
            snapshot = set(self._pending)
        if not snapshot:
            return True
        _, not_done = wait(snapshot, timeout=timeout)
        return not not_done

    def close(self, timeout: float | None = None) -> None:
        self.drain(timeout)
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=timeout is None)


class SynchronousNotifier:
    """Delivers on the calling thread, before ``notify`` returns."""

    def notify(self, observers: Mapping[str, Observer], info: ExecutionInfo) -> list[Future[Any]]:
        for name, observer in observers.items():
            deliver(name, observer, info)
        return []

    @property
    def pending(self) -> int:
        return 0

    def drain(self, timeout: float | None = None) -> bool:
        return True

    def close(self, timeout: float | None = None) -> None:
        pass


__all__ = [
    "CommandObserver",
    "LoggingCommandObserver",
    "ObserverNotifier",
    "SynchronousNotifier",
    "deliver",
    "resolve_observers",
]
