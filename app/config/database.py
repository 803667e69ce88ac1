"""
Database configuration.

Async SQLAlchemy engine and session factory shared by services and tasks.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config.settings import settings


def create_engine_from_settings() -> AsyncEngine:
    """
    Create async engine from application settings.

    asyncpg receives the statement timeout; other drivers get default
    connect arguments.

    Returns:
        Configured async engine
    """
    if settings.database_url.startswith("sqlite"):
        return create_async_engine(
            settings.database_url,
            echo=settings.database_echo,
        )

    return create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        connect_args={"command_timeout": settings.db_command_timeout},
    )


async_engine = create_engine_from_settings()

async_session_maker = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session and close it afterwards.

    Yields:
        AsyncSession
    """
    async with async_session_maker() as session:
        yield session
