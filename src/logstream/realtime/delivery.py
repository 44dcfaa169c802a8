"""Backpressure-safe delivery to a single connection.

send() never blocks and never drops a message because a socket is busy:

- Buffer empty and nothing queued → transmit immediately
- Otherwise the payload joins that connection's FIFO queue, and one pump
  task per connection retries every `retry_interval` seconds until the
  buffer drains, then transmits the head of the queue

The queue keeps per-connection order: a later message can't overtake one
that is still waiting. Retrying stops as soon as the connection closes:
the pump checks liveness on every iteration, and discard() cancels it
outright from the close path.
"""

import asyncio
from collections import deque
from typing import Optional

import structlog

from logstream.realtime.connection import Connection

logger = structlog.get_logger()


class BackpressureSender:
    """Per-connection deferred delivery with a fixed retry interval."""

    def __init__(self, retry_interval: float = 0.1, warn_after: int = 50):
        self.retry_interval = retry_interval
        self.warn_after = max(1, warn_after)
        self._queues: dict[str, deque[str]] = {}
        self._pumps: dict[str, asyncio.Task] = {}

    def send(self, connection: Connection, payload: str) -> bool:
        """Deliver payload. Returns True if it was transmitted right away.

        Sending to a closed connection is a silent no-op.
        """
        if not connection.is_open:
            return False

        queue = self._queues.get(connection.id)
        if not queue and connection.buffered_amount == 0:
            connection.transmit(payload)
            return True

        if queue is None:
            queue = self._queues[connection.id] = deque()
        queue.append(payload)
        logger.debug(
            "stream.backpressure_deferred",
            connection_id=connection.id,
            buffered=connection.buffered_amount,
            queued=len(queue),
        )
        if connection.id not in self._pumps:
            self._pumps[connection.id] = asyncio.create_task(self._pump(connection, queue))
        return False

    async def _pump(self, connection: Connection, queue: deque[str]) -> None:
        retries = 0
        try:
            while queue:
                if not connection.is_open:
                    logger.info(
                        "stream.delivery_abandoned",
                        connection_id=connection.id,
                        dropped=len(queue),
                    )
                    queue.clear()
                    break
                if connection.buffered_amount > 0:
                    retries += 1
                    if retries % self.warn_after == 0:
                        logger.warning(
                            "stream.backpressure_retry",
                            connection_id=connection.id,
                            retries=retries,
                            buffered=connection.buffered_amount,
                            queued=len(queue),
                        )
                    await asyncio.sleep(self.retry_interval)
                    continue
                retries = 0
                payload = queue.popleft()
                try:
                    connection.transmit(payload)
                except Exception:
                    logger.exception(
                        "stream.delivery_failed",
                        connection_id=connection.id,
                        queued=len(queue),
                    )
            else:
                logger.debug("stream.backlog_drained", connection_id=connection.id)
        finally:
            if self._pumps.get(connection.id) is asyncio.current_task():
                del self._pumps[connection.id]
            if self._queues.get(connection.id) is queue and not queue:
                del self._queues[connection.id]

    def pending(self, connection: Connection) -> int:
        """Messages waiting for this connection's buffer to drain."""
        queue: Optional[deque[str]] = self._queues.get(connection.id)
        return len(queue) if queue else 0

    def discard(self, connection: Connection) -> int:
        """Stop retrying for a connection. Returns how many were dropped."""
        task = self._pumps.pop(connection.id, None)
        if task:
            task.cancel()
        queue = self._queues.pop(connection.id, None)
        return len(queue) if queue else 0

    async def close(self) -> None:
        """Cancel every pump (app shutdown)."""
        tasks = list(self._pumps.values())
        self._pumps.clear()
        self._queues.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
