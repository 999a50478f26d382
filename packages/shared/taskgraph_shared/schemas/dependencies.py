"""Dependency graph schemas: edge requests, edge read records and readiness views."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import DependencyKind, TaskStatus
from .tasks import TaskRead


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

class DependencyCreate(BaseModel):
    """Request body for POST /tasks/{taskId}/dependencies.

    kind=blocked_by: the path task cannot start until dependent_task_id completes.
    kind=blocks: dependent_task_id cannot start until the path task completes.
    """
    dependent_task_id: UUID
    kind: DependencyKind = DependencyKind.BLOCKED_BY


class DependencyRead(BaseModel):
    id: UUID
    task_id: UUID
    dependent_task_id: UUID
    kind: DependencyKind
    created_at: datetime
    created_by_user_id: UUID

    # Related task information; empty/None when the referenced task is gone
    task_title: str = ""
    dependent_task_title: str = ""
    task_status: Optional[TaskStatus] = None
    dependent_task_status: Optional[TaskStatus] = None


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------

class CanStartRead(BaseModel):
    task_id: UUID
    can_start: bool


class BlockingReasonsRead(BaseModel):
    task_id: UUID
    reasons: List[str] = Field(default_factory=list)


class TaskWithDependencies(TaskRead):
    blocked_by: List[DependencyRead] = Field(default_factory=list)
    blocks: List[DependencyRead] = Field(default_factory=list)
    can_start: bool = True
    blocking_reasons: List[str] = Field(default_factory=list)
