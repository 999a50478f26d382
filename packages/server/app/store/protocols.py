"""Store interfaces consumed by the dependency engine.

Every engine component takes its store as a constructor argument, so the SQL
implementations in app.store.sql can be swapped for in-memory fakes.
"""

from __future__ import annotations

import uuid
from typing import AsyncContextManager, Iterable, Protocol

from app.models.dependency import TaskDependency
from app.models.task import Task


class DependencyStore(Protocol):
    """Edge persistence plus the raw lookups the engine needs."""

    async def get_edges_touching(self, task_id: uuid.UUID) -> list[TaskDependency]:
        """All edges where task_id is either endpoint, in creation order."""
        ...

    async def get_blocking_edges_for(self, task_id: uuid.UUID) -> list[TaskDependency]:
        """blocked_by edges whose subject is task_id (what it waits on)."""
        ...

    async def get_blocked_edges_by(self, task_id: uuid.UUID) -> list[TaskDependency]:
        """blocked_by edges whose target is task_id (what waits on it)."""
        ...

    async def get_blocker_ids(self, task_id: uuid.UUID) -> list[uuid.UUID]:
        """Targets of the blocked_by edges whose subject is task_id."""
        ...

    async def get_by_id(self, edge_id: uuid.UUID) -> TaskDependency | None:
        ...

    async def insert(self, edge: TaskDependency) -> TaskDependency:
        """Stamp created_at, persist and return the stored edge.

        Raises NotFoundError if either endpoint task no longer exists.
        """
        ...

    async def delete_by_id(self, edge_id: uuid.UUID) -> bool:
        """True if a row was removed; removing a missing edge returns False."""
        ...

    async def edge_exists(
        self, task_id: uuid.UUID, dependent_task_id: uuid.UUID, kind: str
    ) -> bool:
        ...

    def write_transaction(self) -> AsyncContextManager[None]:
        """Hold the graph write lock; commit on success, roll back on error."""
        ...


class TaskLookup(Protocol):
    """Read-only access to task existence and status."""

    async def get_task(self, task_id: uuid.UUID) -> Task | None:
        ...

    async def get_tasks(self, task_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Task]:
        """Tasks keyed by id; ids with no task are absent from the result."""
        ...
