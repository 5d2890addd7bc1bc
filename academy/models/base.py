"""Database base and session setup."""
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

import config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _connect_args(url: str) -> dict:
    # sqlite waits this long on a locked database before raising
    if url.startswith("sqlite"):
        return {"timeout": config.DATABASE_TIMEOUT}
    return {}


engine = create_async_engine(
    config.DATABASE_URL,
    echo=False,
    connect_args=_connect_args(config.DATABASE_URL),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


def utcnow() -> datetime:
    """Naive UTC now; sqlite DateTime columns round-trip without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


async def init_db() -> None:
    """Create all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
