"""Health check endpoint.

Reports whether the database is reachable (required) and Redis is
reachable (optional, only rate limiting depends on it), plus how many
live-stream clients are connected and subscribed.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from logstream import __version__
from logstream.db.engine import get_db
from logstream.realtime.broadcast import Broadcaster
from logstream.realtime.hub import get_broadcaster

router = APIRouter()


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        from logstream.cache import get_redis

        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"unavailable: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"

    return {
        "status": status,
        **checks,
        "connections": broadcaster.registry.connection_count,
        "subscribers": broadcaster.registry.subscriber_count,
    }
