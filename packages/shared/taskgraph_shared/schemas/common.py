from enum import Enum
from typing import Optional
from pydantic import BaseModel

class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class DependencyKind(str, Enum):
    """Relation between a task and the task it references.

    Only BLOCKED_BY is ever stored. BLOCKS is accepted on input and rendered on
    output as the reverse view of a BLOCKED_BY edge.
    """
    BLOCKED_BY = "blocked_by"
    BLOCKS = "blocks"

# Kinds that may appear in the task_dependencies table
STORED_DEPENDENCY_KINDS: frozenset["DependencyKind"] = frozenset({DependencyKind.BLOCKED_BY})

class ErrorBody(BaseModel):
    code: str
    message: str
    status: int
    rule: Optional[str] = None

class ErrorResponse(BaseModel):
    error: ErrorBody
