from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base

from prep_panel.settings.config import settings
from prep_panel.errors import ConfigurationError

Base = declarative_base()

engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker] = None


def normalize_async_url(raw_url: str) -> str:
    if raw_url.startswith("postgresql+psycopg"):
        # if someone provided a sync URL by mistake, upgrade it to async
        return raw_url.replace("postgresql+psycopg2", "postgresql+asyncpg").replace(
            "postgresql+psycopg", "postgresql+asyncpg"
        )
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return raw_url


def configure_engine(url: Optional[str] = None) -> AsyncEngine:
    """Create the process-wide engine and session maker (once per process)."""
    global engine, async_session_maker
    raw_url = (url or settings.DATABASE_URL or "").strip()
    if not raw_url:
        raise ConfigurationError("DATABASE_URL is not configured")
    engine = create_async_engine(normalize_async_url(raw_url), echo=False, future=True)
    async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    return engine


async def get_db():
    if async_session_maker is None:
        configure_engine()
    async with async_session_maker() as session:
        yield session


async def init_db():
    # Only run create_all in dev, never in prod with Alembic
    if settings.RUN_DB_CREATE_ALL:
        from prep_panel import models  # noqa: F401  registers tables on Base
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
