from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import List, Tuple

from slowapi.errors import RateLimitExceeded

from app.core.config import settings
from app.core.database import init_db, close_db
from app.core.exceptions import SocietyError, society_error_handler
from app.core.logging_config import logger
from app.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from app.core.rate_limiter import limiter, rate_limit_exceeded_handler
from app.api.v1.router import api_router

PLACEHOLDER_SECRETS = {"", "CHANGE_ME"}


def check_config() -> Tuple[List[str], List[str]]:
    """Return (errors, warnings) for the loaded settings"""
    errors: List[str] = []
    warnings: List[str] = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")
    for name in ("SECRET_KEY", "JWT_SECRET_KEY"):
        if getattr(settings, name) in PLACEHOLDER_SECRETS:
            errors.append(f"{name} is not set or using default value")

    if not settings.razorpay_configured:
        warnings.append("Razorpay keys not set - online maintenance payments disabled")
    if not settings.SENDGRID_API_KEY and not (settings.SMTP_USER and settings.SMTP_PASSWORD):
        warnings.append("No email provider configured - OTP emails will not be delivered")
    if not settings.USE_MINIO and not settings.AWS_ACCESS_KEY_ID:
        warnings.append("Storage credentials not set - image uploads may fail")

    return errors, warnings


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT}, api {settings.API_VERSION})")

    errors, warnings = check_config()
    for warning in warnings:
        logger.warning(f"[Startup] {warning}")
    if errors:
        for error in errors:
            logger.critical(f"[Startup] {error}")
        raise RuntimeError(f"Missing critical configuration: {', '.join(errors)}")

    await init_db()
    logger.info("[Startup] Database tables ready")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Residential society management: residents, flats, notices, complaints, maintenance and memory lane",
    version="1.0.0",
    lifespan=lifespan,
    redirect_slashes=False  # Prevent 307 redirects that break CORS
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(SocietyError, society_error_handler)

# Last added runs first: CORS -> size limit -> security headers -> logging
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(dict.fromkeys(settings.CORS_ORIGINS + [settings.FRONTEND_URL])),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "detail": "Internal server error",
            "message": str(exc) if settings.DEBUG else "An error occurred"
        }
    )


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": f"/api/{settings.API_VERSION}/health"
    }


app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )
