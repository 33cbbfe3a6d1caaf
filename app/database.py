# python
"""Database engine and session utilities.

This module sets up the asynchronous database engine and session factory for
the ORM models defined in the ``models`` package. It also provides a utility
for fetching an asynchronous database session.
"""
import os
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings

# For testing, prioritize TEST_DATABASE_URL
DB_URL = None
if os.getenv("TESTING") == "true":
    DB_URL = os.getenv("TEST_DATABASE_URL") or settings.test_database_url
else:
    DB_URL = settings.database_url

DB_URL = (DB_URL or "").strip()
if not DB_URL:
    raise RuntimeError(
        "DATABASE_URL is not configured. Set it in the environment or .env file (e.g., DATABASE_URL=postgresql+asyncpg://<user>:<pass>@<host>/<db>)."
    )

engine_options: dict[str, Any] = {"echo": settings.debug}
if not DB_URL.startswith("sqlite"):
    engine_options.update(pool_size=settings.db_pool_size, max_overflow=settings.db_max_overflow)

engine = create_async_engine(DB_URL, **engine_options)


def enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


if engine.dialect.name == "sqlite":
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, Any]:
    async with AsyncSessionLocal() as session:
        yield session
