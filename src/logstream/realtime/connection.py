"""Connections — one live WebSocket consumer.

The registry and the sender only see the Connection interface: an id,
a liveness state, how many bytes are still draining, and a non-blocking
transmit(). WebSocketConnection implements it over a Starlette WebSocket;
tests plug in fakes.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from enum import Enum

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

logger = structlog.get_logger()


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class Connection(ABC):
    """Abstract live consumer connection."""

    def __init__(self):
        self.id = uuid.uuid4().hex
        self.state = ConnectionState.CONNECTING

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    def mark_open(self) -> None:
        self.state = ConnectionState.OPEN

    def mark_closed(self) -> None:
        self.state = ConnectionState.CLOSED

    @property
    @abstractmethod
    def buffered_amount(self) -> int:
        """Bytes handed to the transport that have not been flushed yet."""
        ...

    @abstractmethod
    def transmit(self, payload: str) -> None:
        """Start sending payload without waiting for it to drain."""
        ...


class WebSocketConnection(Connection):
    """Connection over a Starlette WebSocket.

    ASGI doesn't expose the socket's write buffer, so buffered_amount counts
    the bytes of sends that have been started but not yet completed. A send
    completes once the server has written the frame to the transport.
    """

    def __init__(self, websocket: WebSocket):
        super().__init__()
        self.websocket = websocket
        self._buffered = 0
        self._writes: set[asyncio.Task] = set()

    @property
    def buffered_amount(self) -> int:
        return self._buffered

    async def accept(self) -> None:
        await self.websocket.accept()
        self.mark_open()

    def transmit(self, payload: str) -> None:
        size = len(payload.encode("utf-8"))
        self._buffered += size
        task = asyncio.create_task(self._write(payload, size))
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)

    async def _write(self, payload: str, size: int) -> None:
        try:
            await self.websocket.send_text(payload)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            # Socket went away mid-send; the handler's close path cleans up.
            logger.warning("stream.send_failed", connection_id=self.id, error=str(e))
            self.mark_closed()
        finally:
            self._buffered -= size

    async def close(self) -> None:
        """Mark closed and cancel sends still in flight."""
        self.mark_closed()
        for task in list(self._writes):
            task.cancel()
        if self._writes:
            await asyncio.gather(*self._writes, return_exceptions=True)
