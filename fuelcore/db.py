"""Async database engine and the FastAPI session dependency."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fuelcore.config import settings

_ASYNC_SCHEME = "postgresql+asyncpg://"


def normalize_database_url(url: str) -> str:
    """Force the asyncpg driver onto plain postgres URLs (Heroku/Supabase style)."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return _ASYNC_SCHEME + url[len(prefix):]
    return url


engine = create_async_engine(normalize_database_url(settings.database_url), pool_pre_ping=True)
progress_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncSession:  # type: ignore[misc]
    async with progress_session() as session:
        yield session
