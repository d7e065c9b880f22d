"""Health check endpoint.

Verifies the server is running and reports whether the database and
Redis are reachable. Redis being down only degrades rate limiting.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk import __version__
from taskdesk.cache import get_redis
from taskdesk.db.engine import get_db

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "unhealthy"
    if status == "healthy" and checks["redis"] != "ok":
        status = "degraded"

    return {"status": status, **checks}
