"""Async SQLAlchemy engine and session factory.

SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via
FastAPI.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taskdesk.config import settings


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an engine, adding pool sizing only where the dialect pools."""
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_size", 5)
        kwargs.setdefault("max_overflow", 15)
    return create_async_engine(url, echo=settings.debug, **kwargs)


engine = build_engine(settings.database_url)

# Session factory — each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_all(bind: AsyncEngine = engine) -> None:
    """Create any missing tables. Alembic owns real schema changes."""
    from taskdesk.db.models import Base

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
