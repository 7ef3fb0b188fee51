"""Unidirectional message channels between the UI surface and the core.

A channel delivers messages in send order, at most once, with no backpressure:
`send` never blocks. Commands flow UI -> core over a `CommandChannel`; status
and result events flow core -> UI over an `EventChannel`.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from typing import Generic, TypeVar

from services.review.interfaces import NotifierProtocol, SelectionSourceProtocol
from services.review.messages import Command, Event, ProgressEvent
from services.review.models import SelectedNode


T = TypeVar("T")


class ChannelClosed(Exception):
    """Raised by `receive` once the channel is closed and drained."""


class MessageChannel(Generic[T]):
    def __init__(self) -> None:
        self._queue: asyncio.Queue[T | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, message: T) -> None:
        if self._closed:
            # At-most-once: messages sent after close are dropped.
            return
        self._queue.put_nowait(message)

    async def receive(self) -> T:
        if self._closed and self._queue.empty():
            raise ChannelClosed()
        item = await self._queue.get()
        if item is None:
            raise ChannelClosed()
        return item

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            try:
                yield await self.receive()
            except ChannelClosed:
                return

    def drain(self) -> list[T]:
        """Return every message queued so far without waiting."""
        items: list[T] = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not None:
                items.append(item)
        return items


class CommandChannel(MessageChannel[Command]):
    pass


class EventChannel(MessageChannel[Event]):
    pass


class ChannelNotifier(NotifierProtocol):
    """Surface notices to the UI as `progress` events."""

    def __init__(self, events: EventChannel) -> None:
        self._events = events

    async def notify(self, message: str) -> None:
        await self._events.send(ProgressEvent(message=message))


class SessionSelection(SelectionSourceProtocol):
    """Latest selection reported by the host for one document session."""

    def __init__(
        self, file_key: str = "", nodes: Sequence[SelectedNode] = ()
    ) -> None:
        self._file_key = file_key
        self._nodes: tuple[SelectedNode, ...] = tuple(nodes)

    @property
    def file_key(self) -> str:
        return self._file_key

    def update(self, file_key: str, nodes: Sequence[SelectedNode]) -> None:
        self._file_key = file_key
        self._nodes = tuple(nodes)

    async def current_selection(self) -> Sequence[SelectedNode]:
        return self._nodes
