"""
Graph write gate: serializes dependency writes so that two concurrent edge
creations can never pass their cycle checks against the same stale snapshot.

The lock is global to the dependency graph. Locking only the two endpoints of
a new edge is not enough: A->B and C->D may be joined into a cycle by B->C and
D->A, which share no endpoint.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncContextManager, Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import is_postgres
from app.core.errors import OperationCancelled, StorageError

# Arbitrary 64-bit key shared by every writer of task_dependencies
DEPENDENCY_GRAPH_LOCK_KEY = 0x7467_6465_7073  # "tgdeps"


class WriteGate(Protocol):
    def hold(self, session: AsyncSession, timeout: float) -> AsyncContextManager[None]:
        """Async context manager; the caller commits before leaving it."""
        ...


class ProcessWriteGate:
    """In-process gate for single-process deployments and SQLite."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def hold(self, session: AsyncSession, timeout: float):
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout)
        except asyncio.TimeoutError:
            raise OperationCancelled(
                f"Timed out after {timeout}s waiting for the dependency graph write lock"
            )
        try:
            yield
        finally:
            self._lock.release()


class AdvisoryWriteGate:
    """PostgreSQL transaction-scoped advisory lock, released on commit/rollback."""

    @asynccontextmanager
    async def hold(self, session: AsyncSession, timeout: float):
        try:
            await asyncio.wait_for(
                session.execute(
                    text("SELECT pg_advisory_xact_lock(:key)"),
                    {"key": DEPENDENCY_GRAPH_LOCK_KEY},
                ),
                timeout,
            )
        except asyncio.TimeoutError:
            raise OperationCancelled(
                f"Timed out after {timeout}s waiting for the dependency graph advisory lock"
            )
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not acquire dependency graph lock: {exc}") from exc
        yield


def make_write_gate(database_url: str) -> WriteGate:
    if is_postgres(database_url):
        return AdvisoryWriteGate()
    return ProcessWriteGate()
