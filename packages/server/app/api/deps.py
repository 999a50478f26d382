"""FastAPI dependencies that assemble the dependency engine for one request.

The graph write gate lives on app.state (one per application instance) and the
stores wrap the request's database session.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_session
from app.core.locking import WriteGate
from app.services.dependencies import DependencyService
from app.store.sql import SqlDependencyStore, SqlTaskLookup


def get_write_gate(request: Request) -> WriteGate:
    return request.app.state.write_gate


def get_dependency_service(
    session: AsyncSession = Depends(get_session),
    gate: WriteGate = Depends(get_write_gate),
    settings: Settings = Depends(get_settings),
) -> DependencyService:
    timeout = settings.store_timeout_seconds
    return DependencyService(
        SqlDependencyStore(session, gate, timeout),
        SqlTaskLookup(session, timeout),
        max_visits=settings.cycle_search_max_visits,
    )
