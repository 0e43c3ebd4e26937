"""
Async SQLAlchemy engine and session factory for the carpool store.

Production runs on PostgreSQL through ``asyncpg``.  The tests build their
own SQLite engine and only reuse ``Base.metadata`` from here.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from carpool.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
)

# Objects stay readable after commit; response models are built from them.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for users, pools, participants, feedback, penalties."""


async def dispose_engine() -> None:
    await engine.dispose()
