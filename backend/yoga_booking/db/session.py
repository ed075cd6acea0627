"""
Async engine, session factory and transaction helpers.

TRANSACTION MODEL
=================

Every booking operation runs its read-checks and writes inside one
transaction opened with `transaction(db)`: commit on success, rollback on any
exception, so a failed check never leaves an orphan booking or a stray count
change behind.

PostgreSQL runs at READ COMMITTED and the services lock the class row with
SELECT ... FOR UPDATE. A second booking for the same class blocks on that lock
and, once the first commits, reads the committed count.

SQLite (local development and tests) ignores FOR UPDATE. Instead each
transaction starts with BEGIN IMMEDIATE, taking the database write lock up
front, so concurrent writers queue on the busy timeout instead of
interleaving.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from yoga_booking.core.config import get_settings
from yoga_booking.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        # take over BEGIN from the driver so we can emit BEGIN IMMEDIATE
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Build an engine for `database_url` with the dialect-specific locking setup."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("timeout", settings.SQLITE_BUSY_TIMEOUT)
        engine = create_async_engine(database_url, connect_args=connect_args, **kwargs)
        _install_sqlite_hooks(engine)
        return engine

    kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
    kwargs.setdefault("max_overflow", settings.DB_MAX_OVERFLOW)
    kwargs.setdefault("pool_timeout", settings.DB_POOL_TIMEOUT)
    kwargs.setdefault("pool_recycle", settings.DB_POOL_RECYCLE)
    kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)
SessionLocal = create_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Services commit their own transactions."""
    async with SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Commit everything done inside the block, or roll all of it back.

    A rollback expires every instance in the session, including objects
    returned by earlier successful blocks.
    """
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise
