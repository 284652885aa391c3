"""Per-connection outbound event queue."""

import enum
import logging
import threading
from collections.abc import AsyncIterator, Callable
from types import TracebackType
from typing import TypeVar

import anyio
from anyio import from_thread, lowlevel
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from roomcast.events import Event

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PushResult(enum.Enum):
    DELIVERED = "delivered"
    OVERFLOW = "overflow"
    DISCONNECTED = "disconnected"


class Outbound:
    """Bounded FIFO of events that the transport drains to the remote peer.

    Pushing never waits on the reader. When the buffer is full the newest event
    is dropped, the queue is marked ``overflowed`` and closed, so the transport
    drains what is already buffered and then disconnects the peer.

    The first iteration binds the queue to the reader's event loop. After that,
    pushes and closes from other threads are run on that loop so the waiting
    reader is woken.

    Usage:
        async for event in outbound:
            await websocket.send_json(event.model_dump(mode="json"))
    """

    def __init__(self, connection_id: str, buffer_size: int) -> None:
        self.connection_id = connection_id
        self._send: MemoryObjectSendStream[Event]
        self._receive: MemoryObjectReceiveStream[Event]
        self._send, self._receive = anyio.create_memory_object_stream(
            max_buffer_size=buffer_size
        )
        self._closed = False
        self.overflowed = False
        self._lock = threading.Lock()
        self._token: object | None = None
        self._loop_thread: int | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of events buffered and not yet drained."""
        return self._receive.statistics().current_buffer_used

    def push(self, event: Event) -> PushResult:
        return self._on_reader_loop(self._push, event)

    def close(self) -> None:
        """Stop accepting events. Buffered events can still be drained."""
        self._on_reader_loop(self._close)

    def _push(self, event: Event) -> PushResult:
        if self._closed:
            return PushResult.DISCONNECTED
        try:
            self._send.send_nowait(event)
        except anyio.WouldBlock:
            logger.warning(
                "Outbound queue for %s is full, dropping %s and disconnecting",
                self.connection_id,
                event.type,
            )
            self.overflowed = True
            self._close()
            return PushResult.OVERFLOW
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            # Reader went away before the registry noticed
            self._close()
            return PushResult.DISCONNECTED
        return PushResult.DELIVERED

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._send.close()

    def _on_reader_loop(self, func: Callable[..., T], *args: object) -> T:
        with self._lock:
            token = self._token
            if token is None or threading.get_ident() == self._loop_thread:
                return func(*args)
        try:
            return from_thread.run_sync(func, *args, token=token)
        except RuntimeError:
            # The reader's loop has stopped, so nothing is waiting to be woken
            logger.debug("Event loop for %s is gone", self.connection_id)
            with self._lock:
                return func(*args)

    def drain_nowait(self) -> list[Event]:
        """Take every buffered event without waiting."""
        events: list[Event] = []
        while True:
            try:
                events.append(self._receive.receive_nowait())
            except (anyio.WouldBlock, anyio.EndOfStream):
                return events

    def __aiter__(self) -> AsyncIterator[Event]:
        return self._iter()

    async def _iter(self) -> AsyncIterator[Event]:
        with self._lock:
            self._token = lowlevel.current_token()
            self._loop_thread = threading.get_ident()
        async for event in self._receive:
            yield event

    async def aclose(self) -> None:
        """Close both ends; pending events are discarded."""
        self.close()
        await self._receive.aclose()

    async def __aenter__(self) -> "Outbound":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
