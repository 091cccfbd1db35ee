"""Database session management with async SQLAlchemy.

The ledger store is PostgreSQL in production. SQLite (aiosqlite) is accepted
for local runs and tests; it has no server-side pool to size.
"""
from typing import Any, AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from studio_payments.config import Settings, settings


def engine_options(config: Settings) -> dict[str, Any]:
    """
    Engine keyword arguments for the configured ledger store.

    Args:
        config: Application settings

    Returns:
        Keyword arguments for ``create_async_engine``
    """
    options: dict[str, Any] = {"echo": config.debug, "pool_pre_ping": True}
    if make_url(config.database_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_recycle=config.db_pool_recycle,
        )
    return options


# Create async engine
engine = create_async_engine(settings.database_url, **engine_options(settings))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    Services that talk to Stripe may commit part of their work early (the
    customer reference); whatever is left is committed here.

    Yields:
        AsyncSession: Database session for the request lifecycle
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Declarative base for all models
Base = declarative_base()
