"""Pydantic schemas for log records.

- LogCreate: what producers POST. Fields are optional at the schema level
  so the ingestion service can report *which* fields are missing with a
  400 instead of FastAPI's generic 422.
- LogRead: the wire/storage shape, used for API responses and for the
  JSON pushed to WebSocket subscribers.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator


class LogCreate(BaseModel):
    service: Optional[str] = None
    type: Optional[str] = None
    message: Optional[str] = None


class LogRead(BaseModel):
    id: int
    service: str
    type: str
    message: str
    timestamp: datetime

    model_config = {"from_attributes": True}

    @field_validator("timestamp")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes; everything is stored as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class IngestAck(BaseModel):
    success: bool = True
    id: int
