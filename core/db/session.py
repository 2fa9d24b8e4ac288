from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from core.config import config


def is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def get_engine_config(database_url: str) -> Dict[str, Any]:
    """Engine options for the configured backend.

    PostgreSQL gets a pre-pinged connection pool; SQLite gets one
    connection per checkout so aiosqlite threads are never shared.
    """
    if is_sqlite(database_url):
        return {
            "echo": False,
            "connect_args": {"check_same_thread": False},
            "poolclass": NullPool,
        }
    return {
        "echo": False,
        "pool_size": config.DATABASE_POOL_SIZE,
        "max_overflow": config.DATABASE_MAX_OVERFLOW,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


def enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    """Turn on FK enforcement; SQLite leaves it off per connection."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = create_async_engine(config.DATABASE_URL, **get_engine_config(config.DATABASE_URL))

if is_sqlite(config.DATABASE_URL):
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Services commit their own units of work; anything left open when a
    store error escapes is rolled back here.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except SQLAlchemyError:
            await session.rollback()
            raise
