from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from .config import Settings


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


def _is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def create_engine(settings: Settings) -> AsyncEngine:
    """Build the engine behind every store.

    The pool never hands out more than one connection, so writes from
    concurrent pipelines are serialized by the pool itself.
    """
    url = settings.database_url
    options: dict[str, Any] = {"echo": False, "future": True}
    if _is_memory_sqlite(url):
        options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(pool_size=1, max_overflow=0, pool_timeout=settings.db_pool_timeout_s)

    engine = create_async_engine(url, **options)
    if make_url(url).get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create any missing tables; existing tables are left untouched."""
    import vidproc.db.models  # noqa: F401 - ensure models are registered on the metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


__all__ = ["Base", "create_engine", "create_session_factory", "init_models"]
