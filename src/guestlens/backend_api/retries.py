"""Retry decision logic, exponential backoff, and a reusable retry policy.

This module provides the building blocks every network call site shares:

* :func:`should_retry` -- decide whether a failed HTTP attempt is retryable.
* :func:`compute_backoff` -- compute the delay before the next attempt.
* :func:`is_transient` -- classify an exception as retryable or fatal.
* :class:`RetryPolicy` -- max attempts + backoff + classification, bundled.
* :func:`retry_async` -- run a coroutine factory under a policy.

The transport applies the policy per HTTP request; the upload coordinator
applies it per storage chunk.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

import httpx

from guestlens.errors import (
    GuestlensNetworkError,
    GuestlensRetryExhaustedError,
    GuestlensStorageError,
)
from guestlens.observability import get_logger

if TYPE_CHECKING:
    from guestlens.config import GuestlensConfig

T = TypeVar("T")

log = get_logger("guestlens.retries")

# HTTP status codes that are safe to retry.
_RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

# Network-level exceptions that warrant a retry.
_RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
)


def should_retry(
    status_code: int | None,
    exception: Exception | None,
    attempt: int,
    max_attempts: int,
) -> bool:
    """Decide whether a request should be retried.

    Parameters
    ----------
    status_code:
        HTTP status code from the response, or ``None`` if the request never
        received a response (e.g. network timeout).
    exception:
        The exception that was raised, or ``None`` if a response was received.
    attempt:
        The current attempt number (0-indexed).
    max_attempts:
        Maximum total attempts allowed (including the initial request).

    Returns
    -------
    bool
        ``True`` if the request should be retried; ``False`` otherwise.
    """
    if attempt + 1 >= max_attempts:
        return False

    if exception is not None:
        return isinstance(exception, _RETRYABLE_EXCEPTIONS)

    if status_code is not None:
        return status_code in _RETRYABLE_STATUSES

    return False


def compute_backoff(
    attempt: int,
    base: float = 1.0,
    maximum: float = 8.0,
    jitter: bool = True,
    retry_after: float | None = None,
) -> float:
    """Compute the delay before the next retry attempt.

    A server-provided ``Retry-After`` value is used directly.  Otherwise
    the delay follows exponential backoff (``base * 2^attempt``) capped at
    *maximum*.  With *jitter* the delay is randomly scaled to between 50 %
    and 100 % of its value.
    """
    if retry_after is not None:
        delay = retry_after
    else:
        delay = min(base * (2 ** attempt), maximum)

    if jitter:
        delay *= 0.5 + random.random() * 0.5

    return delay


def is_transient(exc: BaseException) -> bool:
    """Return ``True`` for failures worth retrying.

    Timeouts, dropped connections, exhausted server-error retries and
    storage errors flagged ``transient`` are retryable.  Validation, auth,
    permission and format errors are fatal.
    """
    if isinstance(exc, _RETRYABLE_EXCEPTIONS):
        return True
    if isinstance(exc, (GuestlensNetworkError, GuestlensRetryExhaustedError)):
        return True
    if isinstance(exc, GuestlensStorageError):
        return bool(exc.context.get("transient"))
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try an operation and how long to wait in between.

    Attributes
    ----------
    max_attempts:
        Total attempts including the first.  ``1`` disables retries.
    base_delay / max_delay / jitter:
        Parameters for :func:`compute_backoff`.
    classify:
        Predicate deciding whether an exception is retryable.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 8.0
    jitter: bool = True
    classify: Callable[[BaseException], bool] = is_transient

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    @classmethod
    def from_config(
        cls,
        config: GuestlensConfig,
        max_attempts: int | None = None,
    ) -> RetryPolicy:
        return cls(
            max_attempts=max_attempts if max_attempts is not None else config.retry_max_attempts,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
            jitter=config.retry_jitter,
        )

    def allows_retry(self, exc: BaseException, attempt: int) -> bool:
        """Whether *exc* raised on 0-indexed *attempt* should be retried."""
        return attempt + 1 < self.max_attempts and self.classify(exc)

    def delay_for(self, attempt: int, retry_after: float | None = None) -> float:
        return compute_backoff(
            attempt,
            base=self.base_delay,
            maximum=self.max_delay,
            jitter=self.jitter,
            retry_after=retry_after,
        )


NO_RETRY = RetryPolicy(max_attempts=1)


async def retry_async(
    policy: RetryPolicy,
    operation: Callable[[], Awaitable[T]],
    *,
    op: str = "operation",
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    on_retry: Callable[[int, BaseException, float], None] | None = None,
) -> T:
    """Await ``operation()`` until it succeeds or *policy* gives up.

    Parameters
    ----------
    policy:
        The retry policy to apply.
    operation:
        A zero-argument callable returning a fresh awaitable per attempt.
    op:
        Operation name for log records.
    sleep:
        Awaitable sleep function (injectable for tests).
    on_retry:
        Called as ``on_retry(attempt, exc, delay)`` before each wait.

    Returns
    -------
    The operation's result.

    Raises
    ------
    Exception
        The last exception once it is fatal or attempts are exhausted.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if not policy.allows_retry(exc, attempt):
                raise
            delay = policy.delay_for(attempt)
            log.warning(
                "Retrying after transient failure",
                extra={
                    "extra_fields": {
                        "op": op,
                        "attempt": attempt + 1,
                        "max_attempts": policy.max_attempts,
                        "delay_s": round(delay, 3),
                        "error": str(exc),
                    }
                },
            )
            if on_retry is not None:
                on_retry(attempt, exc, delay)
            await sleep(delay)
            attempt += 1
