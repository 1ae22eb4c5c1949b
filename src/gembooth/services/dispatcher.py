"""Per-class concurrency limits for outbound generation calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationClass(StrEnum):
    """Buckets of operations sharing one concurrency bound."""

    IMAGE = "image"
    TEXT = "text"


@dataclass
class ConcurrencyDispatcher:
    """Runs thunks once a slot for their operation class is free.

    Each class owns an independent FIFO semaphore, so saturating one class
    never blocks the other.
    """

    image_limit: int = 2
    text_limit: int = 4
    _semaphores: dict[OperationClass, asyncio.Semaphore] = field(
        init=False, repr=False
    )
    _in_flight: dict[OperationClass, int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.image_limit < 1 or self.text_limit < 1:
            raise ValueError("Concurrency limits must be at least 1")
        self._semaphores = {
            OperationClass.IMAGE: asyncio.Semaphore(self.image_limit),
            OperationClass.TEXT: asyncio.Semaphore(self.text_limit),
        }
        self._in_flight = {op_class: 0 for op_class in OperationClass}

    async def submit(
        self,
        operation_class: OperationClass,
        thunk: Callable[[], Awaitable[T]],
        cancel_event: asyncio.Event | None = None,
    ) -> T | None:
        """Run a thunk within its class limit and return its result.

        Returns ``None`` without running the thunk when ``cancel_event`` is set
        while the submission is still queued.
        """
        semaphore = self._semaphores[operation_class]
        if not await _acquire(semaphore, cancel_event):
            _logger.debug("Dispatch %s cancelled while queued", operation_class)
            return None
        self._in_flight[operation_class] += 1
        _logger.debug(
            "Dispatch %s: in_flight=%s",
            operation_class,
            self._in_flight[operation_class],
        )
        try:
            return await thunk()
        finally:
            self._in_flight[operation_class] -= 1
            semaphore.release()

    def in_flight(self, operation_class: OperationClass) -> int:
        """Return how many thunks of a class are currently running."""
        return self._in_flight[operation_class]


async def _acquire(
    semaphore: asyncio.Semaphore, cancel_event: asyncio.Event | None
) -> bool:
    """Take a slot, or give up the place in line once the event is set."""
    if cancel_event is None:
        await semaphore.acquire()
        return True
    if cancel_event.is_set():
        return False
    acquire_task = asyncio.ensure_future(semaphore.acquire())
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait(
            {acquire_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        if acquire_task.done() and not acquire_task.cancelled():
            semaphore.release()
        raise
    finally:
        for waiter in (acquire_task, cancel_task):
            if not waiter.done():
                waiter.cancel()
    if not acquire_task.done() or acquire_task.cancelled():
        return False
    if cancel_event.is_set():
        semaphore.release()
        return False
    return True
