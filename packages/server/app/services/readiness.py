"""
Readiness: can a task start, and if not, what is it waiting on.

Only the dependency question is answered here. Whether a completed or
cancelled task may start again is the caller's policy.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from app.models.task import Task
from app.store.protocols import DependencyStore, TaskLookup
from taskgraph_shared.schemas.common import TaskStatus


@dataclass(frozen=True)
class Readiness:
    task_id: uuid.UUID
    reasons: list[str] = field(default_factory=list)

    @property
    def can_start(self) -> bool:
        return not self.reasons


def blocking_reason(blocker: Task) -> str:
    return (
        f"Waiting for task '{blocker.title}' (#{blocker.id}) to be completed "
        f"(currently {blocker.status})"
    )


class ReadinessEvaluator:
    """Re-reads edges and task statuses on every call; nothing is cached."""

    def __init__(self, store: DependencyStore, tasks: TaskLookup) -> None:
        self._store = store
        self._tasks = tasks

    async def evaluate(self, task_id: uuid.UUID) -> Readiness:
        edges = await self._store.get_blocking_edges_for(task_id)
        if not edges:
            return Readiness(task_id)

        blockers = await self._tasks.get_tasks(e.dependent_task_id for e in edges)
        reasons = []
        for edge in edges:
            blocker = blockers.get(edge.dependent_task_id)
            # Edge left behind by a deleted task; it blocks nothing
            if blocker is None:
                continue
            if blocker.status != TaskStatus.COMPLETED.value:
                reasons.append(blocking_reason(blocker))
        return Readiness(task_id, reasons)

    async def can_start(self, task_id: uuid.UUID) -> bool:
        return (await self.evaluate(task_id)).can_start

    async def blocking_reasons(self, task_id: uuid.UUID) -> list[str]:
        return (await self.evaluate(task_id)).reasons
