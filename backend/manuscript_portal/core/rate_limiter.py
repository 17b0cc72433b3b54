"""
Rate Limiting
=============
slowapi limiter keyed by authenticated user when possible, client IP otherwise.
Storage is Redis when REDIS_URL is set, in-process memory otherwise.

Endpoint limits:
- /auth/login: 5 req/min (brute force protection)
- /auth/signup/*: 3 req/min
- manuscript uploads: 10 req/min
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from manuscript_portal.core.config import settings
from manuscript_portal.core.logging_config import logger

LOGIN_LIMIT = "5/minute"
SIGNUP_LIMIT = "3/minute"
UPLOAD_LIMIT = "10/minute"


def get_user_identifier(request: Request) -> str:
    """
    Rate limit key.

    Priority:
    1. Authenticated user ID (set on request.state by the auth dependency)
    2. IP address
    """
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


def get_storage_uri() -> str:
    """Redis when configured, otherwise per-process memory"""
    return settings.REDIS_URL or "memory://"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=get_storage_uri(),
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    JSON 429 with a Retry-After header
    """
    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}",
        extra={"event_type": "rate_limit", "http_path": request.url.path}
    )

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests. Please slow down.",
            "code": "RATE_LIMIT_EXCEEDED",
            "limit": str(exc.detail),
        },
        headers={"Retry-After": "60"}
    )
