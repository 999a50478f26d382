#!/usr/bin/env python3
"""Seed a development database with demo tasks and a small dependency graph.

Usage:
    uv run python scripts/seed_dev_data.py

Uses TG_DATABASE_URL (or the default from app.core.config). Safe to re-run:
existing tasks are kept and existing dependencies are skipped.
"""

import asyncio
import uuid

from app.core.config import get_settings
from app.core.database import create_engine, create_session_factory, init_db
from app.core.errors import ValidationError
from app.core.locking import make_write_gate
from app.models.task import Task
from app.services.dependencies import DependencyService
from app.store.sql import SqlDependencyStore, SqlTaskLookup
from taskgraph_shared.schemas.common import DependencyKind

# Deterministic UUIDs for reproducibility
SEED_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000010")
TASK_IDS = [uuid.UUID(f"00000000-0000-0000-0000-0000000002{i:02d}") for i in range(8)]

TASK_SPECS = [
    ("Design API schema", "completed"),
    ("Set up CI pipeline", "completed"),
    ("Implement auth middleware", "in-progress"),
    ("Add dependency endpoints", "pending"),
    ("Write integration tests", "pending"),
    ("Set up staging environment", "in-progress"),
    ("Load test staging", "pending"),
    ("Launch", "pending"),
]

# (task index, blocked-by task index)
DEPENDENCIES = [
    (2, 0),
    (3, 0),
    (3, 2),
    (4, 3),
    (4, 1),
    (6, 5),
    (6, 4),
    (7, 6),
]


async def seed():
    settings = get_settings()
    engine = create_engine(settings.database_url)
    await init_db(engine)
    session_factory = create_session_factory(engine)
    gate = make_write_gate(settings.database_url)

    async with session_factory() as session:
        for tid, (title, status) in zip(TASK_IDS, TASK_SPECS):
            if await session.get(Task, tid) is None:
                session.add(Task(id=tid, title=title, status=status))
        await session.commit()

        service = DependencyService(
            SqlDependencyStore(session, gate, settings.store_timeout_seconds),
            SqlTaskLookup(session, settings.store_timeout_seconds),
            max_visits=settings.cycle_search_max_visits,
        )
        created = 0
        for task_idx, blocker_idx in DEPENDENCIES:
            try:
                await service.create_dependency(
                    TASK_IDS[task_idx], TASK_IDS[blocker_idx], DependencyKind.BLOCKED_BY, SEED_USER_ID
                )
                created += 1
            except ValidationError as exc:
                print(f"  skipped {TASK_SPECS[task_idx][0]} -> {TASK_SPECS[blocker_idx][0]}: {exc.rule}")

        launch = await service.get_task_with_dependencies(TASK_IDS[-1])

    await engine.dispose()
    print(f"✅ Seeded {len(TASK_IDS)} tasks and {created} new dependencies.")
    print(f"   '{launch.title}' can start: {launch.can_start}")


if __name__ == "__main__":
    asyncio.run(seed())
