"""Retry strategies with exponential backoff.

Example:
    >>> strategy = ExponentialBackoff(max_attempts=3, base_delay=1.0)
    >>> [strategy.next_delay(n) for n in range(2)]
    [1.0, 2.0]
"""

from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from reportspine.core.errors import is_retryable

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[Any]]


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Delay in seconds after zero-based attempt ``attempt`` failed."""
        ...

    @abstractmethod
    def should_retry(self, attempts_made: int, error: BaseException | None = None) -> bool:
        """Return True if another attempt is allowed after ``attempts_made`` failures."""
        ...


@dataclass
class ExponentialBackoff(RetryStrategy):
    """Exponential backoff, retrying only retryable errors.

    Delay after failed attempt n = min(base_delay * multiplier**n, max_delay),
    plus optional jitter.

    Attributes:
        max_attempts: Total attempts including the first one
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap in seconds
        multiplier: Exponential multiplier
        jitter: Add randomness to the delay
        jitter_range: Range of jitter as fraction of delay (0.0-1.0)
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: bool = False
    jitter_range: float = 0.25

    def next_delay(self, attempt: int) -> float:
        delay = min(self.base_delay * (self.multiplier ** attempt), self.max_delay)
        if self.jitter:
            jitter_amount = delay * self.jitter_range
            delay = max(0.0, delay + random.uniform(-jitter_amount, jitter_amount))
        return delay

    def should_retry(self, attempts_made: int, error: BaseException | None = None) -> bool:
        if attempts_made >= self.max_attempts:
            return False
        if error is not None:
            return is_retryable(error)
        return True


@dataclass
class NoRetry(RetryStrategy):
    """No retry - fail immediately."""

    def next_delay(self, attempt: int) -> float:
        return 0.0

    def should_retry(self, attempts_made: int, error: BaseException | None = None) -> bool:
        return False


@dataclass
class RetryContext:
    """Tracks the attempts of one retried operation.

    Example:
        >>> ctx = RetryContext(ExponentialBackoff(max_attempts=3))
        >>> table = await ctx.run_async(transport.get_values, locator)
    """

    strategy: RetryStrategy
    on_retry: Callable[[int, BaseException, float], None] | None = None
    sleep: SleepFunc = asyncio.sleep
    attempt: int = field(default=0, init=False)

    @property
    def attempts(self) -> int:
        """Number of attempts made."""
        return self.attempt

    async def run_async(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await ``func`` until it succeeds or the strategy gives up.

        Raises:
            The last exception once retries are exhausted, or the first
            non-retryable one.
        """
        while True:
            self.attempt += 1
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if not self.strategy.should_retry(self.attempt, e):
                    raise

                delay = self.strategy.next_delay(self.attempt - 1)
                if self.on_retry:
                    self.on_retry(self.attempt, e, delay)
                await self.sleep(delay)
