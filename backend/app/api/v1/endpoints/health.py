"""
Health Check Endpoints

- /health       - Basic liveness (app is running)
- /health/ready - Readiness check (database reachable, integrations configured)
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import Dict, Any
import time

from app.core.config import settings
from app.core.database import get_db
from app.core.logging_config import logger


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database(db: AsyncSession) -> Dict[str, Any]:
    """Check database connectivity"""
    start = time.time()
    try:
        await db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "message": "Database connection successful"
        }
    except Exception as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "error": str(e),
            "message": "Database connection failed"
        }


def check_integrations() -> Dict[str, Any]:
    """Configuration status of external collaborators (no network calls)"""
    if settings.USE_SENDGRID and settings.SENDGRID_API_KEY:
        email = "sendgrid"
    elif settings.SMTP_USER and settings.SMTP_PASSWORD:
        email = "smtp"
    else:
        email = "not_configured"

    return {
        "email": email,
        "payments": "razorpay" if settings.razorpay_configured else "not_configured",
        "storage": "minio" if settings.USE_MINIO else "s3",
    }


@router.get("")
async def health_check():
    """Liveness check"""
    return {"success": True, "message": "Server is running successfully"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness check; 503 when the database is unreachable"""
    database = await check_database(db)
    ready = database["status"] == "healthy"

    body = {
        "success": ready,
        "status": "ready" if ready else "not_ready",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.ENVIRONMENT,
        "checks": {
            "database": database,
            "integrations": check_integrations(),
        },
    }
    return JSONResponse(status_code=200 if ready else 503, content=body)
