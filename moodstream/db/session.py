"""
Database engine and session management.

A single ``Database`` handle owns the async engine and its connection pool.
The application constructs it once at startup and hands it to every
component that needs the datastore.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from moodstream.db import models  # noqa: F401  registers tables on Base.metadata
from moodstream.db.base import Base

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv(
    "DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/moodstream"
)
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "20"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "30"))
DB_CREATE_TABLES = os.getenv("DB_CREATE_TABLES", "false").lower() == "true"


def normalize_database_url(url: str) -> str:
    """Select an async driver for plain ``postgres://`` style URLs."""
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    if url.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + url[len("sqlite://"):]
    return url


class Database:
    """Owner of the async engine, its bounded pool and the session factory."""

    def __init__(self, url: str = DATABASE_URL, echo: bool = False):
        self.url = normalize_database_url(url)

        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if not self.url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=DB_POOL_SIZE,
                max_overflow=0,
                pool_timeout=DB_POOL_TIMEOUT,
                pool_recycle=DB_POOL_RECYCLE,
            )

        self.engine = create_async_engine(self.url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Acquire a session for one unit of work.

        The session is rolled back if the block raises and is always
        returned to the pool.
        """
        session = self.session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def create_all(self) -> None:
        """Create any missing tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async def ping(self) -> None:
        async with self.session() as session:
            await session.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        logger.info("Shutting down database pool")
        await self.engine.dispose()
        logger.info("Database pool shut down complete")
