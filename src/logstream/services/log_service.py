"""Log ingestion — validate, persist, then broadcast.

The order is the contract:
1. All of service/type/message must be present and non-blank
2. The record is committed via LogStore (PersistenceError propagates)
3. Only then is it broadcast, exactly once, to live subscribers

Broadcast is fire-and-forget: whatever happens during fan-out is logged
here and never turns a successful insert into a failed request.
"""

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from logstream.db.models import LogRecord
from logstream.realtime.broadcast import Broadcaster
from logstream.services.log_store import LogStore

logger = structlog.get_logger()

REQUIRED_FIELDS = ("service", "type", "message")


class ValidationError(Exception):
    """Raised when required submission fields are missing or empty."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required fields: {', '.join(missing)}")


class LogService:
    """Ingestion pipeline: LogStore write followed by live fan-out."""

    def __init__(self, db: AsyncSession, broadcaster: Broadcaster):
        self.store = LogStore(db)
        self.broadcaster = broadcaster

    async def ingest(
        self,
        service: Optional[str],
        type: Optional[str],
        message: Optional[str],
    ) -> LogRecord:
        values = {"service": service, "type": type, "message": message}
        missing = [
            name for name in REQUIRED_FIELDS
            if not values[name] or not values[name].strip()
        ]
        if missing:
            raise ValidationError(missing)

        record = await self.store.insert(service=service, type=type, message=message)
        logger.info(
            "logs.ingested",
            record_id=record.id,
            service=record.service,
            type=record.type,
        )

        try:
            self.broadcaster.broadcast(record)
        except Exception:
            logger.exception("logs.broadcast_failed", record_id=record.id)
        return record
