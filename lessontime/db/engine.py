"""Async SQLAlchemy engine and session factory.

The engine is built once by the FastAPI lifespan (``lifespan_db``) and
kept on ``app.state.database``; request code receives sessions through
the dependency in lessontime/api/dependencies.py and never imports an
engine from here.

When DATABASE_URL is unset, ``app.state.database`` is None and the
dependency hands out the process-wide InMemoryProgressStore instead.

The engine runs in AUTOCOMMIT mode: each statement of the update flow
commits on its own, and the study-time audit insert is not rolled back
when the later conditional write reports zero rows.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from lessontime.core.config import Settings
from lessontime.repos.progress_store import InMemoryProgressStore

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


@dataclass(frozen=True)
class Database:
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()


def create_database(settings: Settings) -> Database:
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not configured")

    engine = create_async_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        isolation_level="AUTOCOMMIT",
    )
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return Database(engine=engine, session_factory=session_factory)


@asynccontextmanager
async def lifespan_db(app: FastAPI, settings: Settings) -> AsyncGenerator[None, None]:
    """Create the persistence handle on startup, release it on shutdown."""
    if settings.database_url is None:
        logger.info("No DATABASE_URL configured, using in-memory progress store")
        app.state.database = None
        app.state.memory_store = InMemoryProgressStore()
        yield
        return

    database = create_database(settings)
    app.state.database = database
    app.state.memory_store = None
    logger.info(
        "Database engine created: %s pool_size=%d max_overflow=%d",
        database.engine.url.render_as_string(hide_password=True),
        settings.db_pool_size,
        settings.db_max_overflow,
    )
    try:
        yield
    finally:
        await database.dispose()
        logger.info("Database engine disposed")
