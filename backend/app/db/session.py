from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.settings import get_settings

settings = get_settings()


def build_engine(url: str) -> AsyncEngine:
    # SQLite (local runs, tests) has no server-side pool to size
    if make_url(url).get_backend_name() == "sqlite":
        return create_async_engine(url, echo=settings.APP_DEBUG)
    return create_async_engine(
        url,
        echo=settings.APP_DEBUG,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """One transaction per unit of work; commits on exit, rolls back on error."""
    async with AsyncSessionLocal() as session:
        async with session.begin():
            yield session
