"""
Rate Limiting for SocietyPro API
================================
slowapi limiter keyed by user id when authenticated, client IP otherwise.
Storage is in-memory by default, Redis via RATE_LIMIT_STORAGE_URI.

Credential endpoints carry tighter per-route limits:
- login, verify-otp: CREDENTIAL_LIMIT
- register, resend-otp: SIGNUP_LIMIT
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging_config import logger

CREDENTIAL_LIMIT = "5/minute"
SIGNUP_LIMIT = "3/minute"
RETRY_AFTER_SECONDS = 60


def get_user_identifier(request: Request) -> str:
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """429 in the API envelope with Retry-After"""
    logger.warning(f"[RateLimit] Exceeded for {get_user_identifier(request)} on {request.url.path}: {exc.detail}")

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Too many requests. Please slow down.",
            "detail": str(exc.detail),
            "retry_after_seconds": RETRY_AFTER_SECONDS,
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)}
    )
