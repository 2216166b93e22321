"""Rate limiting for sensitive endpoints.

Uses slowapi with in-process storage; only unauthenticated endpoints that
trigger outbound email (password reset) are limited.
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse


def _get_client_ip(request: Request) -> str:
    """
    Get client IP from request, preferring the first X-Forwarded-For hop.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(key_func=_get_client_ip, strategy="fixed-window")


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    return JSONResponse(
        status_code=429,
        content={
            "kind": "rate_limited",
            "detail": f"Rate limit exceeded: {exc.detail}",
        },
        headers={"Retry-After": "60"},
    )
