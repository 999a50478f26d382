"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from uuid import UUID

from .common import TaskStatus


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskBase(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)


class TaskCreate(TaskBase):
    status: TaskStatus = TaskStatus.PENDING


class TaskRead(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------

class TaskStatusUpdate(BaseModel):
    """Request body for POST /tasks/{taskId}/status."""
    status: TaskStatus
