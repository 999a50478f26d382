"""
Task service layer: the slice of the task store the dependency engine relies on.

Handles:
- Task creation and lookup
- Status changes (completion timestamps)
- Deletion, which cascades to every dependency touching the task
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models.task import Task
from taskgraph_shared.schemas.common import TaskStatus
from taskgraph_shared.schemas.tasks import TaskCreate, TaskRead

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_task_or_404(session: AsyncSession, task_id: uuid.UUID) -> Task:
    task = await session.get(Task, task_id)
    if not task:
        raise NotFoundError(f"Task {task_id} not found")
    return task


def task_to_read(task: Task) -> TaskRead:
    return TaskRead(
        id=task.id,
        title=task.title,
        description=task.description,
        status=TaskStatus(task.status),
        completed_at=task.completed_at,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def create_task(session: AsyncSession, task_in: TaskCreate) -> Task:
    task = Task(
        title=task_in.title,
        description=task_in.description,
        status=task_in.status.value,
    )
    if task_in.status == TaskStatus.COMPLETED:
        task.completed_at = datetime.now(timezone.utc)
    session.add(task)
    await session.flush()
    log.info("task.created", task_id=str(task.id), status=task.status)
    return task


async def set_task_status(session: AsyncSession, task: Task, status: TaskStatus) -> Task:
    old_status = task.status
    task.status = status.value
    if status == TaskStatus.COMPLETED:
        task.completed_at = datetime.now(timezone.utc)
    elif old_status == TaskStatus.COMPLETED.value:
        task.completed_at = None  # reopen

    session.add(task)
    await session.flush()
    log.info("task.status_changed", task_id=str(task.id), from_status=old_status, to_status=status.value)
    return task


async def delete_task(session: AsyncSession, task: Task) -> None:
    await session.delete(task)
    await session.flush()
    log.info("task.deleted", task_id=str(task.id))
