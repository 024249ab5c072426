from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from core.config import settings
from db.database import ping_database


router = APIRouter(tags=["health"])

_started = time.monotonic()


@router.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.app_version,
        "environment": settings.environment,
        "uptime": round(time.monotonic() - _started, 3),
        "database": {"connected": await ping_database()},
    }
