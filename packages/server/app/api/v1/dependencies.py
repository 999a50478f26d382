"""
Dependency endpoints: list, create, delete, readiness.

- Creation rejects self-dependencies, duplicates and circular dependencies (409).
- kind=blocks is accepted and stored as the reverse blocked_by edge.
- can-start / blocking-reasons re-read live statuses on every call.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response

from app.api.deps import get_dependency_service
from app.core.auth import AuthenticatedUser, require_caller
from app.services.dependencies import DependencyService
from taskgraph_shared.schemas.dependencies import (
    BlockingReasonsRead,
    CanStartRead,
    DependencyCreate,
    DependencyRead,
    TaskWithDependencies,
)


# Mounted at /tasks/{task_id}/dependencies
task_router = APIRouter()

# Mounted at /dependencies
router = APIRouter()


# ---------------------------------------------------------------------------
# Per-task
# ---------------------------------------------------------------------------


@task_router.get("/", response_model=List[DependencyRead])
async def list_dependencies_endpoint(
    task_id: uuid.UUID,
    service: DependencyService = Depends(get_dependency_service),
):
    """All dependencies where the task is either end."""
    return await service.list_dependencies(task_id)


@task_router.post("/", response_model=DependencyRead, status_code=201)
async def create_dependency_endpoint(
    task_id: uuid.UUID,
    body: DependencyCreate,
    auth: AuthenticatedUser = Depends(require_caller),
    service: DependencyService = Depends(get_dependency_service),
):
    """Add a dependency between this task and dependent_task_id."""
    return await service.create_dependency(
        task_id, body.dependent_task_id, body.kind, auth.user_id
    )


@task_router.get("/with-details", response_model=TaskWithDependencies)
async def task_with_dependencies_endpoint(
    task_id: uuid.UUID,
    service: DependencyService = Depends(get_dependency_service),
):
    """The task plus what blocks it, what it blocks, and whether it can start."""
    return await service.get_task_with_dependencies(task_id)


@task_router.get("/can-start", response_model=CanStartRead)
async def can_start_endpoint(
    task_id: uuid.UUID,
    service: DependencyService = Depends(get_dependency_service),
):
    return CanStartRead(task_id=task_id, can_start=await service.can_task_start(task_id))


@task_router.get("/blocking-reasons", response_model=BlockingReasonsRead)
async def blocking_reasons_endpoint(
    task_id: uuid.UUID,
    service: DependencyService = Depends(get_dependency_service),
):
    return BlockingReasonsRead(task_id=task_id, reasons=await service.blocking_reasons(task_id))


# ---------------------------------------------------------------------------
# By id
# ---------------------------------------------------------------------------


@router.delete("/{dependency_id}", status_code=204)
async def delete_dependency_endpoint(
    dependency_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_caller),
    service: DependencyService = Depends(get_dependency_service),
):
    """Remove a dependency. No cycle re-check is needed."""
    await service.delete_dependency(dependency_id)
    return Response(status_code=204)
