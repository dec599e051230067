"""
Database Session Management

This module creates the async engine and session factory used by the
SQLAlchemy repositories, and creates the tables from the ORM metadata.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from gradecore.common.logger import app_logger
from gradecore.config import settings

from .base import metadata
from . import models  # noqa: F401  (registers the tables on the metadata)

# Set up logging
logger = app_logger.getChild("database.session")


def get_engine_kwargs(database_url: str, echo: bool) -> Dict[str, Any]:
    """
    Get engine keyword arguments based on database type.
    Different databases support different connection options.
    """
    kwargs: Dict[str, Any] = {"echo": echo}

    if database_url.startswith("postgresql"):
        kwargs.update({
            "pool_pre_ping": True,
            "pool_recycle": 300,
        })
    elif database_url.startswith("sqlite") and (":memory:" in database_url or database_url.endswith("://")):
        # One shared connection, otherwise every session sees its own empty database
        kwargs.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })

    return kwargs


def create_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> AsyncEngine:
    """
    Create an async engine.

    Args:
        database_url: Connection URL; defaults to settings.DATABASE_URL
        echo: Whether to echo SQL; defaults to settings.SQL_ECHO

    Returns:
        AsyncEngine instance
    """
    url = database_url or settings.DATABASE_URL
    engine = create_async_engine(url, **get_engine_kwargs(url, settings.SQL_ECHO if echo is None else echo))
    logger.info(f"Created database engine for {url.split('://')[0]}")
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create every table that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Database tables created")


async def drop_models(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@asynccontextmanager
async def session_scope(session_factory: async_sessionmaker) -> AsyncIterator[AsyncSession]:
    """
    Transactional scope: commit on success, roll back on error.

    Example:
        async with session_scope(factory) as session:
            session.add(row)
    """
    session = session_factory()
    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.warning(f"Rolled back database session: {e}")
        raise
    finally:
        await session.close()
