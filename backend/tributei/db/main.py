from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from tributei.config import Settings, settings


def to_async_url(url: str) -> str:
    """
    Maps a plain database URL to its async driver.

    postgresql://... -> postgresql+asyncpg://... (Supabase catalog)
    sqlite:///...    -> sqlite+aiosqlite:///...  (local catalog dump)
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def build_engine(config: Settings) -> AsyncEngine:
    database_url = to_async_url(config.DATABASE_URL)

    # SQLite nie obsługuje pool_size / max_overflow ani opcji asyncpg
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=config.ENV == "development")

    return create_async_engine(
        database_url,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        echo=config.ENV == "development",
        connect_args={
            "statement_cache_size": 0,  # Disable prepared statements for pgbouncer compatibility
        },
    )


engine = build_engine(settings)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()

# Dependency for FastAPI (catalog is read-only for the engine: no commit here)
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
