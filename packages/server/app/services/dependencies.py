"""
Dependency service: the only write path into the dependency graph.

Handles:
- Edge creation with self-dependency, duplicate and circular dependency checks
- Edge deletion by id
- Readiness queries (can-start, blocking reasons)
- The task-with-dependencies read model
"""

from __future__ import annotations

import uuid
from typing import Iterable

import structlog

from app.core.errors import NotFoundError, ValidationError, ValidationRule
from app.models.dependency import TaskDependency
from app.models.task import Task
from app.services.graph import DEFAULT_MAX_VISITS, CycleDetector
from app.services.readiness import ReadinessEvaluator
from app.services.tasks import task_to_read
from app.store.protocols import DependencyStore, TaskLookup
from taskgraph_shared.schemas.common import DependencyKind, TaskStatus
from taskgraph_shared.schemas.dependencies import DependencyRead, TaskWithDependencies

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Read records
# ---------------------------------------------------------------------------


def _status(task: Task | None) -> TaskStatus | None:
    return TaskStatus(task.status) if task is not None else None


def _title(task: Task | None) -> str:
    return task.title if task is not None else ""


def dependency_read(edge: TaskDependency, tasks: dict[uuid.UUID, Task]) -> DependencyRead:
    """Stored edge as a read record, with titles and statuses of both ends."""
    task = tasks.get(edge.task_id)
    dependent = tasks.get(edge.dependent_task_id)
    return DependencyRead(
        id=edge.id,
        task_id=edge.task_id,
        dependent_task_id=edge.dependent_task_id,
        kind=DependencyKind(edge.kind),
        created_at=edge.created_at,
        created_by_user_id=edge.created_by_user_id,
        task_title=_title(task),
        dependent_task_title=_title(dependent),
        task_status=_status(task),
        dependent_task_status=_status(dependent),
    )


def blocks_read(edge: TaskDependency, tasks: dict[uuid.UUID, Task]) -> DependencyRead:
    """The reverse view of a blocked_by edge, seen from the blocking task."""
    return dependency_read(edge, tasks).model_copy(
        update={
            "task_id": edge.dependent_task_id,
            "dependent_task_id": edge.task_id,
            "kind": DependencyKind.BLOCKS,
            "task_title": _title(tasks.get(edge.dependent_task_id)),
            "dependent_task_title": _title(tasks.get(edge.task_id)),
            "task_status": _status(tasks.get(edge.dependent_task_id)),
            "dependent_task_status": _status(tasks.get(edge.task_id)),
        }
    )


def _endpoint_ids(edges: Iterable[TaskDependency]) -> set[uuid.UUID]:
    ids: set[uuid.UUID] = set()
    for e in edges:
        ids.add(e.task_id)
        ids.add(e.dependent_task_id)
    return ids


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class DependencyService:
    def __init__(
        self,
        store: DependencyStore,
        tasks: TaskLookup,
        *,
        max_visits: int = DEFAULT_MAX_VISITS,
    ) -> None:
        self._store = store
        self._tasks = tasks
        self.detector = CycleDetector(store, max_visits=max_visits)
        self.readiness = ReadinessEvaluator(store, tasks)

    async def _require_task(self, task_id: uuid.UUID) -> Task:
        task = await self._tasks.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    @staticmethod
    def _reject(
        rule: ValidationRule,
        message: str,
        task_id: uuid.UUID,
        dependent_task_id: uuid.UUID,
    ) -> ValidationError:
        log.info(
            "dependency.rejected",
            rule=rule,
            task_id=str(task_id),
            dependent_task_id=str(dependent_task_id),
        )
        return ValidationError(rule, message)

    # -- reads --------------------------------------------------------------

    async def list_dependencies(self, task_id: uuid.UUID) -> list[DependencyRead]:
        edges = await self._store.get_edges_touching(task_id)
        tasks = await self._tasks.get_tasks(_endpoint_ids(edges))
        return [dependency_read(e, tasks) for e in edges]

    async def can_task_start(self, task_id: uuid.UUID) -> bool:
        return await self.readiness.can_start(task_id)

    async def blocking_reasons(self, task_id: uuid.UUID) -> list[str]:
        return await self.readiness.blocking_reasons(task_id)

    async def get_task_with_dependencies(self, task_id: uuid.UUID) -> TaskWithDependencies:
        task = await self._require_task(task_id)

        blocked_by = await self._store.get_blocking_edges_for(task_id)
        blocks = await self._store.get_blocked_edges_by(task_id)
        tasks = await self._tasks.get_tasks(_endpoint_ids([*blocked_by, *blocks]))
        tasks[task.id] = task
        readiness = await self.readiness.evaluate(task_id)

        return TaskWithDependencies(
            **task_to_read(task).model_dump(),
            blocked_by=[dependency_read(e, tasks) for e in blocked_by],
            blocks=[blocks_read(e, tasks) for e in blocks],
            can_start=readiness.can_start,
            blocking_reasons=readiness.reasons,
        )

    # -- writes -------------------------------------------------------------

    async def create_dependency(
        self,
        task_id: uuid.UUID,
        dependent_task_id: uuid.UUID,
        kind: DependencyKind,
        created_by_user_id: uuid.UUID,
    ) -> DependencyRead:
        """Validate and store a dependency edge.

        kind=BLOCKS is stored as the equivalent BLOCKED_BY edge with the ends
        swapped, so the cycle check always sees a single edge kind.
        """
        if kind == DependencyKind.BLOCKS:
            task_id, dependent_task_id = dependent_task_id, task_id
        stored_kind = DependencyKind.BLOCKED_BY.value

        if task_id == dependent_task_id:
            raise self._reject(
                "self-dependency", "A task cannot depend on itself", task_id, dependent_task_id
            )

        task = await self._require_task(task_id)
        blocker = await self._require_task(dependent_task_id)

        async with self._store.write_transaction():
            if await self._store.edge_exists(task_id, dependent_task_id, stored_kind):
                raise self._reject(
                    "duplicate",
                    f"Task '{task.title}' is already blocked by task '{blocker.title}'",
                    task_id,
                    dependent_task_id,
                )

            if await self.detector.would_create_cycle(task_id, dependent_task_id):
                raise self._reject(
                    "cycle",
                    "Adding this dependency would create a circular dependency "
                    f"between task '{task.title}' and task '{blocker.title}'",
                    task_id,
                    dependent_task_id,
                )

            edge = await self._store.insert(
                TaskDependency(
                    task_id=task_id,
                    dependent_task_id=dependent_task_id,
                    kind=stored_kind,
                    created_by_user_id=created_by_user_id,
                )
            )

        log.info(
            "dependency.created",
            dependency_id=str(edge.id),
            task_id=str(task_id),
            dependent_task_id=str(dependent_task_id),
            created_by=str(created_by_user_id),
        )
        return dependency_read(edge, {task.id: task, blocker.id: blocker})

    async def delete_dependency(self, dependency_id: uuid.UUID) -> None:
        async with self._store.write_transaction():
            if not await self._store.delete_by_id(dependency_id):
                raise NotFoundError(f"Dependency {dependency_id} not found")
        log.info("dependency.deleted", dependency_id=str(dependency_id))
