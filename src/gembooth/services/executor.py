"""Timeout and retry wrapper around single provider calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from gembooth.errors import CallCancelledError, ProviderError, TransientProviderError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Timeout and backoff settings for one logical call."""

    timeout_seconds: float = 123.333
    max_retries: int = 5
    base_delay_seconds: float = 1.233
    max_retry_after_seconds: float = 15.0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    def delay_for(self, attempt: int, error: TransientProviderError) -> float:
        """Return the sleep before the attempt following ``attempt``."""
        if error.retry_after is not None:
            return min(max(error.retry_after, 0.0), self.max_retry_after_seconds)
        return self.base_delay_seconds * 2**attempt


@dataclass
class ResilientExecutor:
    """Races each attempt against a timer and retries transient failures.

    Terminal provider errors are raised on the first occurrence. A voluntary
    cancellation, signalled through ``cancel_event`` or by the attempt raising
    ``CallCancelledError``, resolves to ``None`` and is never retried. The event
    is also watched during backoff delays.
    """

    policy: RetryPolicy = field(default_factory=RetryPolicy)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def execute(
        self,
        attempt_fn: Callable[[], Awaitable[T]],
        policy: RetryPolicy | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
        label: str = "call",
    ) -> T | None:
        """Run ``attempt_fn`` until it succeeds, fails terminally or runs out."""
        resolved = policy or self.policy
        attempt = 0
        while True:
            if cancel_event is not None and cancel_event.is_set():
                _logger.info("%s cancelled before attempt %s", label, attempt + 1)
                return None
            try:
                return await _race(
                    attempt_fn(), cancel_event, timeout=resolved.timeout_seconds
                )
            except CallCancelledError:
                _logger.info("%s cancelled during attempt %s", label, attempt + 1)
                return None
            except TransientProviderError as exc:
                exc.attempts = attempt + 1
                if exc.attempts >= resolved.max_retries:
                    _logger.error(
                        "%s failed after %s attempts: %s", label, exc.attempts, exc
                    )
                    raise
                delay = resolved.delay_for(attempt, exc)
                _logger.warning(
                    "%s attempt %s/%s failed (%s), retrying after %.3fs",
                    label,
                    exc.attempts,
                    resolved.max_retries,
                    exc,
                    delay,
                )
            except ProviderError as exc:
                exc.attempts = attempt + 1
                raise

            try:
                await _race(self.sleep(delay), cancel_event)
            except CallCancelledError:
                _logger.info("%s cancelled during backoff", label)
                return None
            attempt += 1


async def _race(
    awaitable: Awaitable[T],
    cancel_event: asyncio.Event | None,
    timeout: float | None = None,
) -> T:
    """Await ``awaitable`` against a timer and a cancel event.

    Whichever loses is cancelled. A set event raises ``CallCancelledError``;
    an expired timer raises ``TransientProviderError``.
    """
    task = asyncio.ensure_future(awaitable)
    waiters: set[asyncio.Future] = {task}
    cancel_task: asyncio.Future | None = None
    if cancel_event is not None:
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        waiters.add(cancel_task)
    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()

    if task in done:
        return task.result()
    if cancel_task is not None and cancel_task in done:
        raise CallCancelledError("Cancelled")
    raise TransientProviderError(f"Attempt timed out after {timeout}s")
