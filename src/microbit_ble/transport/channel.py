"""Single-subscriber async streams fed from transport callbacks."""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

T = TypeVar("T")

_CLOSED = object()


class NotificationChannel(Generic[T]):
    """Async iterator of values published by synchronous callbacks.

    The subscriber is expected to keep draining the channel. Without a
    ``maxsize`` the backlog grows with every published item; with one, the
    oldest items are dropped once the backlog reaches it.

    Usage:
        channel = NotificationChannel[int]()
        channel.publish(1)       # from a callback
        async for value in channel:
            ...
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._maxsize = maxsize
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, item: T) -> None:
        """Queue an item for the subscriber; ignored once closed."""
        if self._closed:
            return
        if self._maxsize and self._queue.qsize() >= self._maxsize:
            self._queue.get_nowait()
        self._queue.put_nowait(item)

    def close(self) -> None:
        """End the stream after the already queued items."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> NotificationChannel[T]:
        return self

    async def __anext__(self) -> T:
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)  # keep later iterations ended
            raise StopAsyncIteration
        return item
