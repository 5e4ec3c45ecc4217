"""Retry policy for provider calls: exponential backoff with non-retryable kinds."""

from __future__ import annotations

import abc
import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from .errors import ErrorKind, error_kind

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Hard ceiling on attempts regardless of strategy configuration.
MAX_RETRY_LOOP = 10

DEFAULT_NON_RETRYABLE_KINDS = frozenset(
    {ErrorKind.AUTHENTICATION, ErrorKind.VALIDATION, ErrorKind.TIMEOUT}
)


class RetryStrategy(abc.ABC):
    """Decides whether a failed attempt is retried and how long to wait."""

    @abc.abstractmethod
    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """*attempt* is the 0-based index of the attempt that just failed."""

    @abc.abstractmethod
    def get_delay(self, attempt: int) -> float:
        """Delay before the attempt following *attempt*."""


class ExponentialBackoffStrategy(RetryStrategy):
    """``delay = base_delay * 2 ** attempt``.

    RateLimit is absent from the default non-retryable set while
    Timeout is present: throttled calls are retried, slow calls are not.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        non_retryable_kinds: Iterable[ErrorKind] = DEFAULT_NON_RETRYABLE_KINDS,
    ) -> None:
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.non_retryable_kinds = frozenset(non_retryable_kinds)

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        if error_kind(error) in self.non_retryable_kinds:
            return False
        if attempt >= self.max_attempts - 1:
            return False
        return True

    def get_delay(self, attempt: int) -> float:
        return self.base_delay * (2**attempt)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    strategy: RetryStrategy,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Run *operation* until it succeeds or *strategy* gives up.

    The last error is re-raised unchanged. Backoff waits suspend the current
    task only, so concurrent callers are not delayed by each other.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt + 1 >= MAX_RETRY_LOOP or not strategy.should_retry(exc, attempt):
                raise
            delay = strategy.get_delay(attempt)
            logger.warning(
                "Attempt %d failed (%s: %s), retrying in %.2fs",
                attempt + 1,
                type(exc).__name__,
                exc,
                delay,
            )
            await sleep(delay)
            attempt += 1
