"""Rate limiting middleware — Redis fixed-window counter per client IP.

Each IP gets one counter per minute: "logstream:rl:{ip}:{minute}".
Over the limit → 429 with Retry-After. Only HTTP requests are counted;
WebSocket scopes pass straight through.

Skipped entirely when Redis is unavailable (e.g., in tests).
"""

import time

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-based rate limiting per IP per minute."""

    def __init__(self, app, rpm: int = 100, exempt_paths: tuple[str, ...] = ("/api/health",)):
        super().__init__(app)
        self.rpm = rpm
        self.exempt_paths = exempt_paths

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        try:
            from logstream.cache import get_redis

            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        window = int(time.time() // 60)
        key = f"logstream:rl:{client_ip}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)  # outlive the window
        except RedisError as e:
            # Redis error — don't block the request
            logger.warning("ratelimit.redis_error", error=str(e))
            return await call_next(request)

        if count > self.rpm:
            return JSONResponse(
                status_code=429,
                content={"detail": RATE_LIMIT_MESSAGE},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.rpm - count))
        return response
