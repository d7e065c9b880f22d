"""API route aggregation.

All routers registered here get mounted in main.py under /api/v1.

Auth is applied at the include_router level using FastAPI's dependencies
parameter, so a missing or bad token is rejected before any handler runs.
Handlers that need to know who is calling also take the Caller
explicitly; FastAPI resolves the dependency once per request.
"""

from fastapi import APIRouter, Depends

from taskdesk.api.auth import router as auth_router
from taskdesk.api.health import router as health_router
from taskdesk.api.projects import router as projects_router
from taskdesk.api.tasks import router as tasks_router
from taskdesk.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid bearer token
api_router.include_router(projects_router, tags=["projects"], dependencies=_auth)
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)
