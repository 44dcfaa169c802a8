"""Log store — append-only log records backed by SQLAlchemy.

Two operations: insert one record, and query with optional exact-match
filters (type, service) and an inclusive time window. Queries always
return newest first and never more than MAX_QUERY_RESULTS rows.

Storage failures surface as PersistenceError; nothing here retries.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from logstream.db.models import LogRecord, utcnow

logger = structlog.get_logger()

MAX_QUERY_RESULTS = 200


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PersistenceError(Exception):
    """Raised when the database cannot store or read records."""
    pass


class InvalidFilterError(Exception):
    """Raised when a query's time window is inverted (start after end)."""
    pass


@dataclass(frozen=True)
class LogFilter:
    """Query filter. Every field is optional; set fields are ANDed."""
    type: Optional[str] = None
    service: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def validate(self) -> None:
        if self.start and self.end and _as_utc(self.start) > _as_utc(self.end):
            raise InvalidFilterError("From date cannot be after To date")


class LogStore:
    """Append-only log store."""

    def __init__(self, db: AsyncSession, limit: int = MAX_QUERY_RESULTS):
        self.db = db
        self.limit = min(limit, MAX_QUERY_RESULTS)

    async def insert(
        self,
        service: str,
        type: str,
        message: str,
        timestamp: Optional[datetime] = None,
    ) -> LogRecord:
        """Persist a record. Returns it with id and timestamp resolved."""
        record = LogRecord(
            service=service,
            type=type,
            message=message,
            timestamp=_as_utc(timestamp) if timestamp else utcnow(),
        )
        try:
            self.db.add(record)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("store.insert_failed", service=service, error=str(e))
            raise PersistenceError("Failed to save log") from e
        return record

    async def query(self, log_filter: LogFilter) -> list[LogRecord]:
        """Matching records, newest first, bounded to the store limit."""
        log_filter.validate()

        query = select(LogRecord)
        if log_filter.type:
            query = query.where(LogRecord.type == log_filter.type)
        if log_filter.service:
            query = query.where(LogRecord.service == log_filter.service)
        if log_filter.start:
            query = query.where(LogRecord.timestamp >= _as_utc(log_filter.start))
        if log_filter.end:
            query = query.where(LogRecord.timestamp <= _as_utc(log_filter.end))
        query = query.order_by(
            LogRecord.timestamp.desc(), LogRecord.id.desc()
        ).limit(self.limit)

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("store.query_failed", error=str(e))
            raise PersistenceError("Failed to fetch logs") from e
        return list(result.scalars().all())
