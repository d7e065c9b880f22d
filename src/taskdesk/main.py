"""FastAPI application factory.

create_app() returns a configured FastAPI instance. Lifespan manages
startup/shutdown (database, Redis). Middleware, CORS, error handlers and
routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskdesk import __version__
from taskdesk.api import api_router
from taskdesk.config import settings
from taskdesk.errors import Internal, ServiceError, Unauthenticated

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "taskdesk.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from taskdesk.db.engine import create_all, engine

    if settings.create_tables:
        await create_all(engine)

    from taskdesk.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("taskdesk.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("taskdesk.redis_unavailable", error=str(e))
        # Redis is optional — only rate limiting depends on it

    yield

    logger.info("taskdesk.shutdown")
    await close_redis()
    await engine.dispose()


# ─── Error handlers ──────────────────────────────────────


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.error("request.failed", error=exc.message, details=exc.details)
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_body(), headers=headers
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies, bad enum values and bad ids are all 400s."""
    return JSONResponse(
        status_code=400, content={"error": jsonable_encoder(exc.errors())}
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort. The traceback goes to the log, never to the client."""
    logger.exception("request.unhandled_error", error_type=type(exc).__name__)
    error = Internal("Internal server error", type(exc).__name__)
    return JSONResponse(status_code=error.status_code, content=error.to_body())


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="taskdesk",
        description="Project and task management API with role-gated access",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from taskdesk.middleware.rate_limit import RateLimitMiddleware
    from taskdesk.middleware.request_id import RequestIdMiddleware
    from taskdesk.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: taskdesk.main:app)
app = create_app()
