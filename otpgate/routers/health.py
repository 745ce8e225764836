"""Health Check Endpoints"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, status

from otpgate.config import get_settings

router = APIRouter()
settings = get_settings()


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.app_name,
    }


@router.get("/api/healthchecker", status_code=status.HTTP_200_OK)
async def health_checker() -> Dict[str, Any]:
    """Liveness probe used by the frontend."""
    return {
        "status": "success",
        "message": f"Welcome to {settings.app_name} two-factor authentication",
    }
