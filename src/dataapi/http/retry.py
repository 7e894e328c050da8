"""Retry strategies for the HTTP transport.

A strategy answers two questions: may another attempt be made after this
failure, and how long to wait before it. ``RetryContext`` runs a callable
under a strategy and records every failed attempt; a ``Retry-After`` carried
by the error raises the wait to at least that many seconds.

Attempt numbers are one-based and count every call, the first one included,
so ``max_attempts=3`` means one call plus at most two retries.

Example:
    >>> from dataapi.http.retry import ConstantBackoff, RetryContext
    >>>
    >>> ctx = RetryContext(ConstantBackoff(max_attempts=3, delay=0.1))
    >>> response = ctx.run(lambda: client.send(request))   # doctest: +SKIP
    >>> ctx.attempts                                       # doctest: +SKIP
    1
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, TypeVar

from dataapi.core.errors import get_retry_after, is_retryable

T = TypeVar("T")


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Delay in seconds before the attempt following ``attempt``."""
        ...

    @abstractmethod
    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """True if another attempt may follow attempt number ``attempt``.

        Args:
            attempt: Attempts made so far (one-based)
            error: The exception raised by the last attempt
        """
        ...


@dataclass
class ConstantBackoff(RetryStrategy):
    """Fixed delay between attempts. Used for ``HttpClientOptions``."""

    max_attempts: int = 3
    delay: float = 0.1

    def next_delay(self, attempt: int) -> float:
        return self.delay

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        if attempt >= self.max_attempts:
            return False
        return error is None or is_retryable(error)


@dataclass
class RetryContext:
    """Runs a callable under a strategy and tracks the attempts made.

    Not shared between calls: build one per request.

    Example:
        >>> ctx = RetryContext(ConstantBackoff(max_attempts=2, delay=0))
        >>> ctx.run(lambda: 42)
        42
        >>> ctx.attempts
        1
    """

    strategy: RetryStrategy
    on_retry: Callable[[int, Exception, float], None] | None = None
    sleep: Callable[[float], None] = time.sleep
    attempt: int = field(default=0, init=False)
    last_error: Exception | None = field(default=None, init=False)
    started_at: datetime = field(default_factory=utcnow, init=False)
    errors: list[tuple[int, Exception, datetime]] = field(default_factory=list, init=False)

    @property
    def attempts(self) -> int:
        """Number of attempts made."""
        return self.attempt

    @property
    def elapsed_seconds(self) -> float:
        """Total elapsed time since the context was created."""
        return (utcnow() - self.started_at).total_seconds()

    def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``func`` until it succeeds or the strategy gives up.

        Raises:
            The last exception raised by ``func`` once no retry is allowed
        """
        while True:
            self.attempt += 1
            try:
                return func(*args, **kwargs)
            except Exception as e:
                self.last_error = e
                self.errors.append((self.attempt, e, utcnow()))

                if not self.strategy.should_retry(self.attempt, e):
                    raise

                # a server-supplied Retry-After is a lower bound on the wait
                delay = max(self.strategy.next_delay(self.attempt), get_retry_after(e) or 0)
                if self.on_retry:
                    self.on_retry(self.attempt, e, delay)
                if delay > 0:
                    self.sleep(delay)


__all__ = [
    "RetryStrategy",
    "ConstantBackoff",
    "RetryContext",
]
