from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import QueuePool

from planboard.config import settings
from planboard.core.metrics import db_pool_connections
from planboard.models import Base


def _engine_options(url: str) -> dict[str, Any]:
    # SQLite (local runs) has no server-side pool to size
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


engine: AsyncEngine = create_async_engine(
    settings.database_url, echo=False, **_engine_options(settings.database_url)
)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _record_pool_state(*_: Any) -> None:
    pool = engine.sync_engine.pool
    if not isinstance(pool, QueuePool):
        return
    db_pool_connections.labels(state="size").set(pool.size())
    db_pool_connections.labels(state="checked_in").set(pool.checkedin())
    db_pool_connections.labels(state="checked_out").set(pool.checkedout())
    db_pool_connections.labels(state="overflow").set(pool.overflow())


event.listen(engine.sync_engine, "checkout", _record_pool_state)
event.listen(engine.sync_engine, "checkin", _record_pool_state)


async def init_models() -> None:
    """Create any missing tables. Existing tables are left untouched."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()


async def get_db() -> AsyncSession:  # type: ignore[misc]
    async with async_session() as session:
        yield session
