"""SQLAlchemy ORM models — single source of truth for the database schema.

Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Alembic migrations in db/migrations mirror these tables.

Column types stay portable (no JSONB/ARRAY) so the same model runs on
Postgres in production and SQLite in tests.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogRecord(Base):
    """One ingested log event. Append-only: rows are never updated.

    `service` doubles as the live-stream channel name. WebSocket clients
    subscribe to a service and receive every new record for it.
    """

    __tablename__ = "logs"
    __table_args__ = (
        Index("idx_logs_timestamp", "timestamp"),
        Index("idx_logs_service_timestamp", "service", "timestamp"),
        Index("idx_logs_type", "type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    service: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # Set client-side so the broadcast copy carries the exact stored value.
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<LogRecord id={self.id} service={self.service!r} type={self.type!r}>"
