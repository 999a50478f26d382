"""
Database connection and session management.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.core.config import get_settings

settings = get_settings()


def is_postgres(url: str) -> bool:
    return url.startswith("postgresql")


def engine_options(database_url: str) -> dict:
    # Advisory write gate requires statement-level snapshots
    if is_postgres(database_url):
        return {"isolation_level": "READ COMMITTED"}
    return {}


def create_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Build an async engine. SQLite connections get foreign keys switched on."""
    engine = create_async_engine(
        database_url, echo=echo, future=True, **engine_options(database_url)
    )

    if database_url.startswith("sqlite"):

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = create_engine(settings.database_url, echo=settings.debug)

async_session_factory = create_session_factory(engine)


async def init_db(bind: AsyncEngine = engine):
    """Create all tables (development only)."""
    import app.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

