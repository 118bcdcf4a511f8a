from __future__ import annotations
"""SQLAlchemy 2.0 async engine construction.

MySQL URLs get utf8mb4 and pool health settings to prevent connection staleness.
SQLite URLs (aiosqlite) are used for local runs and tests.
"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models.

    Forces utf8mb4 charset to prevent Emoji crashes in MySQL.
    """

    __table_args__ = {
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine with dialect-appropriate pool settings."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        return create_async_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(
        database_url,
        echo=echo,
        pool_recycle=3600,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        connect_args={"connect_timeout": 30},
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables defined by Base metadata.

    Called once at application startup when DB_AUTO_CREATE is enabled.
    Alembic owns the schema otherwise.
    """
    import app.models  # noqa: F401  registers models on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
