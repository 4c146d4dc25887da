"""
Database engine configuration and lifecycle.
Uses the SQLAlchemy async engine (SQLite via aiosqlite by default).
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from docshield.datastore.models import Base
from docshield.settings import global_settings

# Global engine instance
engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


async def init_db(database_url: str | None = None, echo: bool | None = None) -> None:
    """Create the engine, the session factory and the tables."""
    global engine, AsyncSessionLocal

    engine = create_async_engine(
        database_url or global_settings.database_url,
        echo=global_settings.database_echo if echo is None else echo,
    )

    AsyncSessionLocal = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine's connections."""
    global engine, AsyncSessionLocal
    if engine:
        await engine.dispose()
    engine = None
    AsyncSessionLocal = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for components that open their own sessions."""
    if AsyncSessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return AsyncSessionLocal
