"""Log ingestion and query routes.

Routes translate HTTP to service calls and service exceptions to status
codes; the services own validation, persistence and fan-out.

- POST /api/logs → LogService.ingest (400 missing fields, 500 storage)
- GET  /api/logs → QueryService.query (400 inverted window, 500 storage)
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from logstream.config import settings
from logstream.db.engine import get_db
from logstream.realtime.broadcast import Broadcaster
from logstream.realtime.hub import get_broadcaster
from logstream.schemas.log import IngestAck, LogCreate, LogRead
from logstream.services.log_service import LogService, ValidationError
from logstream.services.log_store import InvalidFilterError, PersistenceError
from logstream.services.query_service import QueryService

router = APIRouter()


def _log_svc(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> LogService:
    return LogService(db, broadcaster)


def _query_svc(db: AsyncSession = Depends(get_db)) -> QueryService:
    return QueryService(db, limit=settings.query_limit)


@router.post("/logs", response_model=IngestAck, status_code=201)
async def ingest_log(
    body: LogCreate,
    svc: LogService = Depends(_log_svc),
):
    """Store a log record and push it to live subscribers of its service."""
    try:
        record = await svc.ingest(
            service=body.service,
            type=body.type,
            message=body.message,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": "Missing required fields", "missing": e.missing},
        )
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Failed to save log")
    return IngestAck(id=record.id)


@router.get("/logs", response_model=list[LogRead])
async def query_logs(
    type: Optional[str] = Query(None, description="Exact log type"),
    service: Optional[str] = Query(None, description="Exact service name"),
    from_: Optional[str] = Query(None, alias="from", description="ISO-8601 lower bound (inclusive)"),
    to: Optional[str] = Query(None, description="ISO-8601 upper bound (inclusive)"),
    svc: QueryService = Depends(_query_svc),
):
    """Most recent matching records, newest first."""
    try:
        return await svc.query(type=type, service=service, from_=from_, to=to)
    except InvalidFilterError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Failed to fetch logs")
