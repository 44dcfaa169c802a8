"""API route aggregation.

All routers registered here get mounted in main.py under /api.
The WebSocket stream lives in logstream.realtime.websocket.
"""

from fastapi import APIRouter

from logstream.api.health import router as health_router
from logstream.api.logs import router as logs_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(logs_router, tags=["logs"])
