"""
Database Connection Module
Handles the database connection using SQLAlchemy async engine.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from oldrao.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def engine_options(database_url: str, echo: bool = False) -> dict[str, Any]:
    """Engine keyword arguments suited to the database backend."""
    if database_url.startswith("sqlite"):
        # In-memory SQLite must share one connection across sessions
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/").endswith("://"):
            options["poolclass"] = StaticPool
        return {"echo": echo, **options}
    return {
        "echo": echo,
        "pool_size": 5,  # Connection pool size
        "max_overflow": 10,  # Extra connections when pool is full
        "pool_pre_ping": True,
    }


engine = create_async_engine(
    settings.database_url,
    **engine_options(settings.database_url, settings.database_echo),
)

# Session factory - creates new database sessions
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # Objects remain accessible after commit
)


# Base class for all our models
class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Register models on Base.metadata
    from oldrao import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")
