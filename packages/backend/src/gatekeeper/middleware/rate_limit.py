"""Rate limiting middleware — Redis-backed fixed window per minute.

Learn: Credential endpoints are the brute-force target, so sign-in,
sign-up and password change share a stricter bucket than the rest of
the API. Keys look like "gatekeeper:rl:{ip}:{bucket}:{minute}".

If Redis is not configured or errors out, requests pass through
unlimited rather than failing.
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()

CREDENTIAL_PATHS = (
    "/api/auth/signin",
    "/api/auth/signup",
    "/api/profile/password",
)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP, per-minute request limits."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            from gatekeeper.cache import get_redis

            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_credential = request.url.path.startswith(CREDENTIAL_PATHS)
        rpm = self.auth_rpm if is_credential else self.default_rpm
        bucket = "auth" if is_credential else "api"
        window = int(time.time() // 60)
        key = f"gatekeeper:rl:{client_ip}:{bucket}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except Exception as e:
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > rpm:
            logger.info("rate_limit.exceeded", bucket=bucket, ip=client_ip)
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many attempts. Try again in a minute."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
