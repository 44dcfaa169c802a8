"""Historical log queries.

Translates raw request parameters into a LogFilter. Parsing is lenient:
a `from`/`to` value that isn't an ISO-8601 date or datetime is treated
as absent (and logged) rather than rejected. Only an inverted window
(both bounds valid and from > to) is an error.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from logstream.db.models import LogRecord
from logstream.services.log_store import MAX_QUERY_RESULTS, LogFilter, LogStore

logger = structlog.get_logger()


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """ISO-8601 date/datetime → aware UTC datetime, or None if unusable.

    Naive values are taken as UTC; "2024-01-01" means midnight UTC.
    """
    if raw is None or not raw.strip():
        return None
    text = raw.strip()
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    try:
        value = datetime.fromisoformat(text)
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        # OverflowError: an offset pushes the instant outside datetime's range
        logger.warning("query.invalid_timestamp", value=raw)
        return None


def build_filter(
    type: Optional[str] = None,
    service: Optional[str] = None,
    from_: Optional[str] = None,
    to: Optional[str] = None,
) -> LogFilter:
    return LogFilter(
        type=type or None,
        service=service or None,
        start=parse_timestamp(from_),
        end=parse_timestamp(to),
    )


class QueryService:
    def __init__(self, db: AsyncSession, limit: int = MAX_QUERY_RESULTS):
        self.store = LogStore(db, limit=limit)

    async def query(
        self,
        type: Optional[str] = None,
        service: Optional[str] = None,
        from_: Optional[str] = None,
        to: Optional[str] = None,
    ) -> list[LogRecord]:
        """Newest-first matches. Raises InvalidFilterError if from > to."""
        return await self.store.query(build_filter(type, service, from_, to))
