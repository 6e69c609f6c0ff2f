"""
SocietyPro - HTTP Middleware
Request correlation and access logging, security headers, body size limit
"""

import time
from typing import Callable, FrozenSet
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse
from starlette.types import ASGIApp

from app.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)

# Probes and docs are not access-logged
QUIET_PATHS: FrozenSet[str] = frozenset({
    "/",
    "/favicon.ico",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api/v1/health",
    "/api/v1/health/ready",
})

SLOW_REQUEST_MS = 1000

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with an id (client supplied X-Request-ID or generated),
    log method/path/status/duration, and echo X-Request-ID and
    X-Response-Time on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        path = request.url.path
        quiet = path in QUIET_PATHS
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                f"{request.method} {path} raised {type(exc).__name__} ({duration_ms:.2f}ms)",
                exc_info=True,
                extra={"event_type": "http_request_error", "http_path": path},
            )
            raise
        finally:
            set_user_id("")

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        if not quiet:
            logger.log_request(
                request.method,
                path,
                response.status_code,
                duration_ms,
                client_ip=request.client.host if request.client else "unknown",
            )
            if duration_ms > SLOW_REQUEST_MS:
                logger.warning(f"Slow request: {request.method} {path} took {duration_ms:.2f}ms")

        set_request_id("")
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add standard browser hardening headers"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject bodies whose declared Content-Length exceeds max_size with 413"""

    def __init__(self, app: ASGIApp, max_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length", "")
        if content_length.isdigit() and int(content_length) > self.max_size:
            logger.warning(
                f"Request body too large: {content_length} bytes (max: {self.max_size})",
                extra={"event_type": "request_too_large", "http_path": request.url.path},
            )
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "message": f"Request body too large. Maximum size is {self.max_size // 1024 // 1024}MB",
                }
            )
        return await call_next(request)
