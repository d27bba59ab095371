"""
Async SQLAlchemy engine & session factory (asyncpg driver).

The engine is owned by a ``Database`` instance built once in
``create_app`` and kept on ``app.state``; nothing here is module-global.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)

from workforce.db.base import Base


def _engine_args(url: str) -> dict[str, Any]:
    engine_args: dict[str, Any] = {
        "echo": False,
        "pool_pre_ping": True,
    }
    if "postgresql" in url:
        engine_args.update(
            {
                "pool_size": 20,
                "max_overflow": 10,
                "pool_recycle": 300,
            }
        )
    return engine_args


class Database:
    """Engine + session factory with an explicit lifecycle."""

    def __init__(self, url: str, **overrides: Any) -> None:
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **{**_engine_args(url), **overrides})
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield an AsyncSession and close it after use."""
        async with self.session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    async def dispose(self) -> None:
        await self.engine.dispose()
