"""FastAPI application factory.

create_app() returns a configured FastAPI instance. Lifespan manages
startup/shutdown (Redis, pending stream deliveries, database engine).
Middleware, CORS, and routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from logstream import __version__
from logstream.api import api_router
from logstream.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "logstream.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from logstream.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("logstream.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("logstream.redis_unavailable", error=str(e))
        # Redis is optional; only rate limiting is lost

    yield

    logger.info("logstream.shutdown")

    # Stop backpressure retries for connections still open
    from logstream.realtime.hub import sender
    await sender.close()

    await close_redis()

    from logstream.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="logstream",
        description="Log ingestion with real-time WebSocket fan-out and historical queries",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → RequestId → handler

    from logstream.middleware.rate_limit import RateLimitMiddleware
    from logstream.middleware.request_id import RequestIdMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(RateLimitMiddleware, rpm=settings.rate_limit_rpm)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    from logstream.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: logstream.main:app)
app = create_app()
