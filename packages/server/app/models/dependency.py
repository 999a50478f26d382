"""Task dependency edge model."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field, SQLModel

from taskgraph_shared.schemas.common import STORED_DEPENDENCY_KINDS

from .base import UUIDMixin, _utcnow

_STORED_KINDS_SQL = ", ".join(sorted(f"'{k.value}'" for k in STORED_DEPENDENCY_KINDS))


class TaskDependency(UUIDMixin, SQLModel, table=True):
    """task_id is blocked by dependent_task_id. Never updated in place."""

    __tablename__ = "task_dependencies"
    __table_args__ = (
        CheckConstraint("task_id != dependent_task_id", name="no_self_dependency"),
        CheckConstraint(f"kind IN ({_STORED_KINDS_SQL})", name="only_blocked_by_stored"),
        UniqueConstraint("task_id", "dependent_task_id", "kind", name="uq_task_dependency"),
    )

    task_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    dependent_task_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    kind: str = Field(nullable=False, default="blocked_by")
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
    created_by_user_id: uuid.UUID = Field(nullable=False)
