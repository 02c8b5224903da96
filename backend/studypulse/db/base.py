"""
Study Pulse Database Setup

One async engine per process, shared by the API request sessions and the
scheduled jobs (each job opens its own session from async_session_maker).

Pool sizing comes from the `database` section of config/default.yaml; the
connection URL comes from the POSTGRES_* settings.

Usage:
    from studypulse.db.base import async_session_maker

    # In a scheduled job
    async with async_session_maker() as session:
        result = await session.execute(...)
"""

from collections.abc import AsyncGenerator, Mapping
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from studypulse.config import settings, yaml_config

POOL_DEFAULTS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
    "pool_pre_ping": True,
}


def build_engine(url: str, pool_config: Mapping[str, Any], echo: bool = False) -> AsyncEngine:
    """Create the async engine; unknown keys in pool_config are ignored."""
    options = {
        key: pool_config.get(key, default) for key, default in POOL_DEFAULTS.items()
    }
    return create_async_engine(url, echo=echo, **options)


engine = build_engine(
    settings.POSTGRES_URL, yaml_config.get("database") or {}, echo=settings.DEBUG
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base of the learner, session, notification and metrics tables."""


# Registers every table on Base.metadata; must come after Base
from studypulse.db import models  # noqa: F401, E402


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    The request's work is committed when the endpoint returns and rolled
    back if it raises.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables (no migrations; existing tables are left as they are)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
