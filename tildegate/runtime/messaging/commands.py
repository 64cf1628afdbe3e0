"""Outbound commands and the single queue that serializes them."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from .errors import DispatcherClosed, DispatcherFull

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


@dataclass
class Command:
    """Rendered payload plus the slot its caller is waiting on.

    The slot resolves to the reply text, or ``None`` when no answer will
    ever come.
    """

    payload: str
    slot: asyncio.Future[str | None]

    def fulfil(self, reply: str | None) -> bool:
        """Deliver *reply* to the caller.

        Returns ``False`` when the slot was already resolved or the caller
        stopped waiting (its future was cancelled by a timeout).  Never
        raises and never blocks.
        """
        if self.slot.done():
            return False
        self.slot.set_result(reply)
        return True

    @property
    def abandoned(self) -> bool:
        return self.slot.cancelled()


class CommandDispatcher:
    """Bounded FIFO of :class:`Command` objects.

    Any number of gateway tasks may :meth:`submit`; exactly one session
    manager :meth:`get`-s.  Submission never waits: it fails when the queue
    is full or once the consumer has been closed.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._queue: asyncio.Queue[Command] = asyncio.Queue(maxsize=capacity)
        self._closed = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    def submit(self, command: Command) -> None:
        if self._closed:
            raise DispatcherClosed("session manager is not running")
        try:
            self._queue.put_nowait(command)
        except asyncio.QueueFull:
            logger.warning(
                "[dispatcher] queue full (%d/%d), rejecting %r",
                self._queue.qsize(), self._capacity, command.payload,
            )
            raise DispatcherFull(f"command queue is full ({self._capacity})") from None

    async def get(self) -> Command:
        return await self._queue.get()

    def close(self) -> None:
        """Refuse further submissions and answer every queued command with ``None``."""
        if self._closed:
            return
        self._closed = True
        dropped = 0
        while True:
            try:
                command = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            command.fulfil(None)
            dropped += 1
        if dropped:
            logger.warning("[dispatcher] closed with %d queued command(s) unanswered", dropped)
