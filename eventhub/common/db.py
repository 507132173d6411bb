"""Database configuration with lazy engine initialization.

Connections are only established when first needed, not at module import time,
so the settings (and therefore the database URL) can be swapped before the
first request.
"""

from datetime import datetime, timezone
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncGenerator, AsyncIterator, List, Type

from sqlalchemy import Enum as SAEnum
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from eventhub.common.config import get_settings

# Base class for all ORM models - this is safe to initialize at import time
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the naive DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def str_enum(enum_cls: Type) -> SAEnum:
    """Store a str-valued enum by its value, as a portable VARCHAR."""

    def _values(members) -> List[str]:
        return [member.value for member in members]

    return SAEnum(enum_cls, values_callable=_values, native_enum=False, length=32)


@lru_cache(maxsize=1)
def get_async_engine():
    """
    Lazily create the async engine on first database access.

    Uses NullPool so each request gets a fresh connection; pooling is left to
    the database side (pgbouncer) in production.
    """
    settings = get_settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        poolclass=NullPool,
    )


@lru_cache(maxsize=1)
def get_sessionmaker() -> async_sessionmaker:
    return async_sessionmaker(
        bind=get_async_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that provides an async database session."""
    async with get_sessionmaker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
