"""Task model. Owned by the task store; the dependency engine only reads it."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    title: str = Field(nullable=False, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: str = Field(nullable=False, default="pending")  # pending | in-progress | completed | cancelled
    completed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
