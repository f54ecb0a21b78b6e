from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from storyframe.config import get_settings
from storyframe.models import Base


def make_session_factory(database_url: str, **engine_kwargs) -> async_sessionmaker[AsyncSession]:
    """Create an engine for ``database_url`` and a session factory bound to it."""
    # echo=True will log SQL queries, helpful for debugging
    engine = create_async_engine(database_url, echo=False, **engine_kwargs)
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for the configured database, created on first use."""
    return make_session_factory(get_settings().database_url)


async def create_tables(engine: AsyncEngine) -> None:
    """Create the project tables if they do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
