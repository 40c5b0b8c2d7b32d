# dentconnect/db/sql.py
from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from dentconnect.core.config import settings
from dentconnect.modules.log import write_audit_log

logger = logging.getLogger(__name__)


def make_engine(dsn: str | None = None) -> AsyncEngine:
    """
    Build the async engine for a DSN.

    SQLite has no row locks, so every transaction there is opened with
    BEGIN IMMEDIATE: writers queue on the database lock (up to
    SQLITE_BUSY_TIMEOUT seconds) instead of failing mid-transaction.
    """
    dsn = dsn or settings.SQL_DSN

    if dsn.startswith("sqlite"):
        engine = create_async_engine(
            dsn,
            echo=settings.DB_ECHO,
            connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT},
        )

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_connect(dbapi_connection, connection_record):
            # let SQLAlchemy emit BEGIN itself
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    return create_async_engine(
        dsn,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_timeout=settings.DB_POOL_TIMEOUT,
    )


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


engine = make_engine()

AsyncSessionLocal = make_sessionmaker(engine)


async def get_session() -> AsyncIterator[AsyncSession]:
    """
    Provide a DB session for each request.
    Write operations commit through `transaction()`; anything left open
    is committed here, and rolled back if the handler raised.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def transaction(
    session: AsyncSession,
    *,
    action: str,
    user_id: uuid.UUID | None = None,
    entity_type: str | None = None,
    entity_id: object | None = None,
) -> AsyncIterator[AsyncSession]:
    """
    All-or-nothing unit of work: COMMIT on success, ROLLBACK on any error.

    A `<action>_COMMIT` audit row is written inside the committed
    transaction; after a rollback a `<action>_ROLLBACK` row is written in
    its own transaction so the failure is recorded too.
    """
    entity_ref = str(entity_id) if entity_id is not None else None
    try:
        yield session
        await write_audit_log(
            session,
            user_id=user_id,
            action=f"{action}_COMMIT",
            entity_type=entity_type,
            entity_id=entity_ref,
            details="Transaction committed successfully",
        )
        await session.commit()
    except Exception as exc:
        await session.rollback()
        logger.info("%s rolled back: %s", action, exc)
        try:
            await write_audit_log(
                session,
                user_id=user_id,
                action=f"{action}_ROLLBACK",
                entity_type=entity_type,
                entity_id=entity_ref,
                details=str(exc),
            )
            await session.commit()
        except Exception:
            # The original error is what the caller needs to see
            await session.rollback()
            logger.exception("Audit log write failed after rollback of %s", action)
        raise


async def ping_db(session: AsyncSession) -> bool:
    await session.execute(text("SELECT 1"))
    return True


async def init_db(bind: AsyncEngine | None = None, *, drop: bool = False) -> None:
    """
    Create tables for every registered model (dev / tests; production uses alembic).
    """
    from dentconnect import models  # noqa: F401  registers all tables
    from dentconnect.db.base import Base

    async with (bind or engine).begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
