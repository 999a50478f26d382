"""
Shared fixtures: a temp-file SQLite database, the FastAPI app wired to it,
and an HTTP client that carries a caller identity.
"""

import os

# Must be set before app.core.database builds its module-level engine
os.environ.setdefault("TG_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings, get_settings
from app.core.database import create_engine, create_session_factory, get_session, init_db
from app.main import create_app
from fakes import CALLER_ID, InMemoryDependencyStore, InMemoryTaskLookup


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'taskgraph_test.db'}"


@pytest.fixture
def settings(db_url) -> Settings:
    return Settings(database_url=db_url, store_timeout_seconds=5.0, cycle_search_max_visits=1000)


@pytest.fixture
async def db_engine(db_url):
    engine = create_engine(db_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def app(settings, session_factory):
    application = create_app(settings)

    async def _get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    application.dependency_overrides[get_session] = _get_session
    application.dependency_overrides[get_settings] = lambda: settings
    return application


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-User-Id": str(CALLER_ID)},
    ) as ac:
        yield ac


@pytest.fixture
def tasks() -> InMemoryTaskLookup:
    return InMemoryTaskLookup()


@pytest.fixture
def store() -> InMemoryDependencyStore:
    return InMemoryDependencyStore()
