"""SQLAlchemy implementations of the dependency engine stores."""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Iterable, TypeVar

from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFoundError, OperationCancelled, StorageError
from app.core.locking import WriteGate
from app.models.base import _utcnow
from app.models.dependency import TaskDependency
from app.models.task import Task
from taskgraph_shared.schemas.common import DependencyKind


T = TypeVar("T")

BLOCKED_BY = DependencyKind.BLOCKED_BY.value

# PostgreSQL SQLSTATE for foreign_key_violation
FOREIGN_KEY_VIOLATION = "23503"


def _is_missing_reference(exc: IntegrityError) -> bool:
    """True when the integrity failure is a dangling tasks.id reference."""
    if getattr(exc.orig, "sqlstate", None) == FOREIGN_KEY_VIOLATION:
        return True
    return "FOREIGN KEY constraint failed" in str(exc.orig)


class _SessionStore:
    def __init__(self, session: AsyncSession, timeout: float) -> None:
        self._session = session
        self._timeout = timeout

    async def _call(self, awaitable: Awaitable[T], action: str) -> T:
        """Await a session call under the store timeout, translating failures."""
        try:
            return await asyncio.wait_for(awaitable, self._timeout)
        except asyncio.TimeoutError:
            raise OperationCancelled(f"{action} timed out after {self._timeout}s")
        except SQLAlchemyError as exc:
            raise StorageError(f"{action} failed: {exc}") from exc

    async def _scalars(self, stmt: Any, action: str) -> list[Any]:
        result = await self._call(self._session.execute(stmt), action)
        return list(result.scalars().all())


class SqlDependencyStore(_SessionStore):
    def __init__(self, session: AsyncSession, gate: WriteGate, timeout: float) -> None:
        super().__init__(session, timeout)
        self._gate = gate

    @staticmethod
    def _ordered(stmt):
        return stmt.order_by(TaskDependency.created_at, TaskDependency.id)

    async def get_edges_touching(self, task_id: uuid.UUID) -> list[TaskDependency]:
        stmt = select(TaskDependency).where(
            or_(
                TaskDependency.task_id == task_id,
                TaskDependency.dependent_task_id == task_id,
            )
        )
        return await self._scalars(self._ordered(stmt), "get_edges_touching")

    async def get_blocking_edges_for(self, task_id: uuid.UUID) -> list[TaskDependency]:
        stmt = select(TaskDependency).where(
            TaskDependency.task_id == task_id,
            TaskDependency.kind == BLOCKED_BY,
        )
        return await self._scalars(self._ordered(stmt), "get_blocking_edges_for")

    async def get_blocked_edges_by(self, task_id: uuid.UUID) -> list[TaskDependency]:
        stmt = select(TaskDependency).where(
            TaskDependency.dependent_task_id == task_id,
            TaskDependency.kind == BLOCKED_BY,
        )
        return await self._scalars(self._ordered(stmt), "get_blocked_edges_by")

    async def get_blocker_ids(self, task_id: uuid.UUID) -> list[uuid.UUID]:
        stmt = select(TaskDependency.dependent_task_id).where(
            TaskDependency.task_id == task_id,
            TaskDependency.kind == BLOCKED_BY,
        )
        return await self._scalars(stmt, "get_blocker_ids")

    async def get_by_id(self, edge_id: uuid.UUID) -> TaskDependency | None:
        return await self._call(self._session.get(TaskDependency, edge_id), "get_by_id")

    async def insert(self, edge: TaskDependency) -> TaskDependency:
        edge.created_at = _utcnow()
        self._session.add(edge)
        try:
            await self._call(self._session.flush(), "insert")
        except StorageError as exc:
            cause = exc.__cause__
            if isinstance(cause, IntegrityError) and _is_missing_reference(cause):
                # A task was deleted between the existence check and the insert
                raise NotFoundError(
                    "A task referenced by this dependency no longer exists"
                ) from cause
            raise
        return edge

    async def delete_by_id(self, edge_id: uuid.UUID) -> bool:
        result = await self._call(
            self._session.execute(delete(TaskDependency).where(TaskDependency.id == edge_id)),
            "delete_by_id",
        )
        return result.rowcount > 0

    async def edge_exists(
        self, task_id: uuid.UUID, dependent_task_id: uuid.UUID, kind: str
    ) -> bool:
        stmt = (
            select(TaskDependency.id)
            .where(
                TaskDependency.task_id == task_id,
                TaskDependency.dependent_task_id == dependent_task_id,
                TaskDependency.kind == kind,
            )
            .limit(1)
        )
        return bool(await self._scalars(stmt, "edge_exists"))

    @asynccontextmanager
    async def write_transaction(self):
        async with self._gate.hold(self._session, self._timeout):
            try:
                yield
                await self._call(self._session.commit(), "commit")
            except Exception:
                await self._session.rollback()
                raise


class SqlTaskLookup(_SessionStore):
    async def get_task(self, task_id: uuid.UUID) -> Task | None:
        return await self._call(self._session.get(Task, task_id), "get_task")

    async def get_tasks(self, task_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Task]:
        ids = set(task_ids)
        if not ids:
            return {}
        rows = await self._scalars(select(Task).where(Task.id.in_(ids)), "get_tasks")
        return {t.id: t for t in rows}
