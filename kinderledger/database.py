"""Async engine, session factory and declarative base"""

import re
import ssl
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from kinderledger.config import settings

_SSLMODE = re.compile(r"([?&])sslmode=([^&]+)&?", re.I)


def split_sslmode(url: str) -> Tuple[str, dict]:
    """
    Move a libpq-style ``sslmode`` query argument into asyncpg connect args.

    asyncpg rejects ``sslmode`` in the URL and wants an SSLContext instead.
    """
    match = _SSLMODE.search(url)
    if match is None:
        return url, {}

    cleaned = _SSLMODE.sub(lambda m: m.group(1), url, count=1).rstrip("?&")
    if match.group(2).lower() not in ("require", "required", "verify-full"):
        return cleaned, {}

    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return cleaned, {"ssl": ctx}


database_url, connect_args = split_sslmode(settings.async_database_url)

engine = create_async_engine(
    database_url,
    connect_args=connect_args,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=settings.DB_POOL_TIMEOUT,
    pool_recycle=settings.DB_POOL_RECYCLE,
)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

Base = declarative_base()


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on error. Used by the scheduler and the outbox writer."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    # Services commit their own work; leftovers from a failed request are rolled back
    async with session_scope() as session:
        yield session


async def init_db() -> None:
    """create_all for local development; deployed databases go through Alembic"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
