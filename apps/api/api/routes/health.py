import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from apps.api.core.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

_STARTED_AT = time.monotonic()


@router.get("/health", summary="Public health probe")
async def health(request: Request) -> dict[str, object]:
    settings = get_settings()
    database = getattr(request.app.state, "database", None)
    database_ok = False
    if database is not None:
        try:
            database_ok = await database.test_connection()
        except Exception:  # noqa: BLE001 - reported through the payload
            logger.exception("Database health check failed")
    return {
        "status": "healthy" if database_ok else "unhealthy",
        "service": settings.app_name,
        "version": settings.api_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "database": "ok" if database_ok else "unavailable",
    }


@router.get("/", summary="API index")
async def index() -> dict[str, object]:
    settings = get_settings()
    return {
        "name": settings.app_name,
        "version": settings.api_version,
        "message": "Welcome to the Ticket Report API",
        "endpoints": {
            "health": "/health",
            "auth": "/auth",
            "users": "/users",
            "categories": "/categories",
            "tickets": "/tickets",
        },
    }
