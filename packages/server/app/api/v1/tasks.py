"""
Task endpoints: the minimal task store surface the dependency engine reads.

Statuses: pending → in-progress → completed (or cancelled)
- Deleting a task removes every dependency that references it.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, require_caller
from app.core.database import get_session
from app.services.tasks import (
    create_task,
    delete_task,
    get_task_or_404,
    set_task_status,
    task_to_read,
)
from taskgraph_shared.schemas.tasks import TaskCreate, TaskRead, TaskStatusUpdate

router = APIRouter()


@router.post("/", response_model=TaskRead, status_code=201)
async def create_task_endpoint(
    task_in: TaskCreate,
    auth: AuthenticatedUser = Depends(require_caller),
    session: AsyncSession = Depends(get_session),
):
    """Create a new task."""
    task = await create_task(session, task_in)
    await session.commit()
    return task_to_read(task)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task_endpoint(
    task_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
):
    task = await get_task_or_404(session, task_id)
    return task_to_read(task)


@router.post("/{task_id}/status", response_model=TaskRead)
async def set_task_status_endpoint(
    task_id: uuid.UUID,
    body: TaskStatusUpdate,
    auth: AuthenticatedUser = Depends(require_caller),
    session: AsyncSession = Depends(get_session),
):
    """Set a task's status. Dependencies are not enforced here; see can-start."""
    task = await get_task_or_404(session, task_id)
    task = await set_task_status(session, task, body.status)
    await session.commit()
    return task_to_read(task)


@router.delete("/{task_id}", status_code=204)
async def delete_task_endpoint(
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_caller),
    session: AsyncSession = Depends(get_session),
):
    task = await get_task_or_404(session, task_id)
    await delete_task(session, task)
    await session.commit()
    return Response(status_code=204)
