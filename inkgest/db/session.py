# inkgest/db/session.py

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from inkgest.core.config import settings


class Base(DeclarativeBase):
    """Declarative root for every studio table."""


def _engine_options(url: str) -> dict:
    # SQLite (tests, local demo) has no server-side pool to pre-ping
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 5}


engine = create_async_engine(settings.async_db_uri, **_engine_options(settings.async_db_uri))

# One session per request or cron tick; rows stay readable after commit
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session
