"""
Health checks.

/health (root, outside the API prefix) reports database connectivity and
returns 503 when it is down. /api/health/live only says the process is up.
"""
import time
from datetime import datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from manuscript_portal.core.config import settings
from manuscript_portal.core.database import get_engine
from manuscript_portal.core.logging_config import logger

router = APIRouter(prefix="/health", tags=["Health"])

_started_at = time.monotonic()


async def check_database() -> bool:
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"[Health] Database check failed: {e}")
        return False


async def health_report() -> JSONResponse:
    database_ok = await check_database()
    body = {
        "status": "ok" if database_ok else "error",
        "uptime": round(time.monotonic() - _started_at, 2),
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "environment": settings.ENVIRONMENT,
        "version": settings.APP_VERSION,
        "database": "connected" if database_ok else "disconnected",
    }
    return JSONResponse(status_code=200 if database_ok else 503, content=body)


@router.get("/live")
async def liveness():
    return {"status": "alive"}
