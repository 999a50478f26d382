"""
Cycle detection for the blocked_by graph.

An edge (X blocked_by Y) means X cannot start before Y finishes. Adding the
candidate (A blocked_by B) closes a cycle iff A is already reachable from B by
following blocked_by edges, so the search starts at B and walks each task's
own blockers looking for A.
"""

from __future__ import annotations

import uuid

import structlog

from app.store.protocols import DependencyStore

log = structlog.get_logger()

DEFAULT_MAX_VISITS = 10_000


class CycleDetector:
    """Read-only reachability check over the persisted edge set."""

    def __init__(self, store: DependencyStore, max_visits: int = DEFAULT_MAX_VISITS) -> None:
        self._store = store
        self._max_visits = max_visits

    async def would_create_cycle(
        self, task_id: uuid.UUID, dependent_task_id: uuid.UUID
    ) -> bool:
        """True if adding (task_id blocked_by dependent_task_id) would close a cycle.

        A self-loop counts as a cycle. If the search expands more than
        max_visits tasks without an answer it reports True rather than risk a
        false negative.
        """
        if task_id == dependent_task_id:
            return True

        visited: set[uuid.UUID] = set()
        stack = [dependent_task_id]

        while stack:
            current = stack.pop()
            if current in visited:
                continue
            if len(visited) >= self._max_visits:
                log.warning(
                    "cycle_search.bound_exceeded",
                    task_id=str(task_id),
                    dependent_task_id=str(dependent_task_id),
                    max_visits=self._max_visits,
                )
                return True
            visited.add(current)

            for blocker_id in await self._store.get_blocker_ids(current):
                if blocker_id == task_id:
                    return True
                if blocker_id not in visited:
                    stack.append(blocker_id)

        return False
