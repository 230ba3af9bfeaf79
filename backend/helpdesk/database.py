"""Database session management for the helpdesk services."""
from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from .config import get_settings

settings = get_settings()
is_sqlite = settings.database_url.startswith("sqlite+")
connect_args = {"check_same_thread": False} if is_sqlite else {}
# SQLite connections are cheap to open, so they are never pooled across event loops
engine = create_async_engine(
    settings.database_url,
    future=True,
    echo=False,
    connect_args=connect_args,
    poolclass=NullPool if is_sqlite else None,
)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

if is_sqlite:

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async SQLAlchemy session per request."""

    async with AsyncSessionLocal() as session:
        yield session
