"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

import asyncio
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from fieldwatch.config.firebase import get_db
from fieldwatch.core.settings import settings


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/db")
async def database_health():
    """
    Database connectivity check.
    Lists Firestore collections, or reports the in-memory store in mock mode.
    """
    if settings.USE_MOCK_DB:
        return {
            "status": "healthy",
            "database": "memory",
            "connected": True,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    try:
        loop = asyncio.get_running_loop()
        collections = await loop.run_in_executor(None, lambda: list(get_db().collections()))
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Database connection failed: {str(e)}")

    return {
        "status": "healthy",
        "database": "firestore",
        "connected": True,
        "collections_count": len(collections),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
