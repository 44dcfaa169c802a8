"""Broadcast engine — fan a stored record out to its subscribers.

broadcast() is synchronous and fire-and-forget: it serializes the record
once, hands it to the sender for every open connection subscribed to
exactly `record.service`, and returns. A failure for one connection is
logged and skipped; it never reaches the other subscribers or the
ingestion request that triggered the broadcast.

Callers outside the realtime package go through the Broadcaster rather
than touching the registry directly.
"""

from typing import Optional, Union

import structlog

from logstream.db.models import LogRecord
from logstream.realtime.connection import Connection
from logstream.realtime.delivery import BackpressureSender
from logstream.realtime.registry import SubscriptionRegistry
from logstream.schemas.log import LogRead

logger = structlog.get_logger()


class Broadcaster:
    """Owns the registry and the sender; the only entry point for fan-out."""

    def __init__(self, registry: SubscriptionRegistry, sender: BackpressureSender):
        self.registry = registry
        self.sender = sender

    # ─── Connection lifecycle ────────────────────────────

    def connect(self, connection: Connection) -> None:
        self.registry.attach(connection)

    def disconnect(self, connection: Connection) -> None:
        """Remove a closing connection and stop any pending retries."""
        channel = self.registry.detach(connection)
        dropped = self.sender.discard(connection)
        if dropped:
            logger.info(
                "stream.pending_dropped",
                connection_id=connection.id,
                channel=channel,
                dropped=dropped,
            )

    def subscribe(self, connection: Connection, channel: str) -> Optional[str]:
        return self.registry.subscribe(connection, channel)

    def unsubscribe(self, connection: Connection) -> Optional[str]:
        return self.registry.unsubscribe(connection)

    def send(self, connection: Connection, payload: str) -> bool:
        return self.sender.send(connection, payload)

    # ─── Fan-out ─────────────────────────────────────────

    def broadcast(self, record: Union[LogRecord, LogRead]) -> int:
        """Deliver record to every matching subscriber. Returns the count."""
        payload = LogRead.model_validate(record).model_dump_json()
        recipients = 0
        for connection in self.registry.subscribers(record.service):
            if not connection.is_open:
                continue
            try:
                self.sender.send(connection, payload)
            except Exception:
                logger.exception(
                    "stream.delivery_failed",
                    connection_id=connection.id,
                    record_id=record.id,
                )
                continue
            recipients += 1

        logger.debug(
            "stream.broadcast",
            record_id=record.id,
            service=record.service,
            recipients=recipients,
        )
        return recipients
