# Imported by init_db so the metadata is populated for create_all.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .task import Task  # noqa: F401
from .dependency import TaskDependency  # noqa: F401
