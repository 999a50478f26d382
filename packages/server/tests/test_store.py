"""
SQL store tests against a temp-file SQLite database.

Tests cover:
- Edge CRUD and the directional lookups
- Database constraints (self-dependency, uniqueness, stored kind) surfacing as StorageError
- A task deleted between the existence check and the insert surfacing as NotFoundError
- Cascade on task deletion
- Rollback of a failed write transaction
- Lock and storage timeouts
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager

import pytest
from sqlalchemy import delete

from app.core.database import create_engine, create_session_factory, engine_options
from app.core.errors import NotFoundError, OperationCancelled, StorageError
from app.core.locking import AdvisoryWriteGate, ProcessWriteGate, make_write_gate
from app.models.dependency import TaskDependency
from app.models.task import Task
from app.services.dependencies import DependencyService
from app.store.sql import SqlDependencyStore, SqlTaskLookup
from taskgraph_shared.schemas.common import DependencyKind

USER = uuid.uuid4()


def _edge(task_id: uuid.UUID, dependent_task_id: uuid.UUID) -> TaskDependency:
    return TaskDependency(
        task_id=task_id,
        dependent_task_id=dependent_task_id,
        kind="blocked_by",
        created_by_user_id=USER,
    )


@pytest.fixture
def gate() -> ProcessWriteGate:
    return ProcessWriteGate()


@pytest.fixture
async def seeded(session):
    """Three committed tasks A, B, C."""
    created = {name: Task(title=name) for name in ("A", "B", "C")}
    for t in created.values():
        session.add(t)
    await session.commit()
    return created


@pytest.fixture
def dep_store(session, gate) -> SqlDependencyStore:
    return SqlDependencyStore(session, gate, timeout=5.0)


class TestEdgeCrud:
    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_timestamp(self, dep_store, seeded):
        a, b = seeded["A"], seeded["B"]
        async with dep_store.write_transaction():
            edge = await dep_store.insert(_edge(a.id, b.id))

        assert edge.id is not None
        assert edge.created_at is not None
        stored = await dep_store.get_by_id(edge.id)
        assert stored is not None and stored.dependent_task_id == b.id

    @pytest.mark.asyncio
    async def test_directional_lookups(self, dep_store, seeded):
        a, b, c = seeded["A"], seeded["B"], seeded["C"]
        async with dep_store.write_transaction():
            ab = await dep_store.insert(_edge(a.id, b.id))
            bc = await dep_store.insert(_edge(b.id, c.id))

        assert [e.id for e in await dep_store.get_edges_touching(b.id)] == [ab.id, bc.id]
        assert [e.id for e in await dep_store.get_blocking_edges_for(b.id)] == [bc.id]
        assert [e.id for e in await dep_store.get_blocked_edges_by(b.id)] == [ab.id]
        assert await dep_store.get_blocker_ids(a.id) == [b.id]
        assert await dep_store.get_edges_touching(uuid.uuid4()) == []

    @pytest.mark.asyncio
    async def test_edge_exists(self, dep_store, seeded):
        a, b = seeded["A"], seeded["B"]
        assert not await dep_store.edge_exists(a.id, b.id, "blocked_by")
        async with dep_store.write_transaction():
            await dep_store.insert(_edge(a.id, b.id))
        assert await dep_store.edge_exists(a.id, b.id, "blocked_by")
        assert not await dep_store.edge_exists(b.id, a.id, "blocked_by")

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, dep_store, seeded):
        a, b = seeded["A"], seeded["B"]
        async with dep_store.write_transaction():
            edge = await dep_store.insert(_edge(a.id, b.id))

        async with dep_store.write_transaction():
            assert await dep_store.delete_by_id(edge.id) is True
        async with dep_store.write_transaction():
            assert await dep_store.delete_by_id(edge.id) is False
        assert await dep_store.get_by_id(edge.id) is None


class TestConstraints:
    @pytest.mark.asyncio
    async def test_duplicate_row_is_storage_error(self, dep_store, seeded):
        a, b = seeded["A"], seeded["B"]
        async with dep_store.write_transaction():
            await dep_store.insert(_edge(a.id, b.id))

        with pytest.raises(StorageError):
            async with dep_store.write_transaction():
                await dep_store.insert(_edge(a.id, b.id))

    @pytest.mark.asyncio
    async def test_self_dependency_row_is_storage_error(self, dep_store, seeded):
        a = seeded["A"]
        with pytest.raises(StorageError):
            async with dep_store.write_transaction():
                await dep_store.insert(_edge(a.id, a.id))

    @pytest.mark.asyncio
    async def test_failed_transaction_leaves_no_edge(self, session_factory, gate, seeded):
        a, b = seeded["A"], seeded["B"]
        async with session_factory() as s:
            store = SqlDependencyStore(s, gate, timeout=5.0)
            with pytest.raises(RuntimeError):
                async with store.write_transaction():
                    await store.insert(_edge(a.id, b.id))
                    raise RuntimeError("validation failed after insert")

        async with session_factory() as s:
            assert await SqlDependencyStore(s, gate, 5.0).get_edges_touching(a.id) == []

    @pytest.mark.asyncio
    async def test_unstored_kind_row_is_storage_error(self, dep_store, seeded):
        a, b = seeded["A"], seeded["B"]
        edge = _edge(a.id, b.id)
        edge.kind = DependencyKind.BLOCKS.value
        with pytest.raises(StorageError):
            async with dep_store.write_transaction():
                await dep_store.insert(edge)


class _DeleteBeforeLockGate(ProcessWriteGate):
    """Commits a task deletion from another session just before taking the lock."""

    def __init__(self, session_factory, task_id: uuid.UUID) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._task_id = task_id

    @asynccontextmanager
    async def hold(self, session, timeout):
        async with self._session_factory() as other:
            await other.execute(delete(Task).where(Task.id == self._task_id))
            await other.commit()
        async with super().hold(session, timeout):
            yield


class TestConcurrentTaskDeletion:
    @pytest.mark.asyncio
    async def test_blocker_deleted_before_insert_is_not_found(
        self, session, session_factory, seeded
    ):
        a_id, b_id = seeded["A"].id, seeded["B"].id
        gate = _DeleteBeforeLockGate(session_factory, b_id)
        service = DependencyService(
            SqlDependencyStore(session, gate, 5.0), SqlTaskLookup(session, 5.0)
        )

        with pytest.raises(NotFoundError):
            await service.create_dependency(a_id, b_id, DependencyKind.BLOCKED_BY, USER)

        async with session_factory() as s:
            assert await SqlDependencyStore(s, ProcessWriteGate(), 5.0).get_edges_touching(a_id) == []
            assert await s.get(Task, b_id) is None


class TestCascade:
    @pytest.mark.asyncio
    async def test_deleting_task_removes_its_edges(self, session_factory, gate, seeded):
        a, b, c = seeded["A"], seeded["B"], seeded["C"]
        async with session_factory() as s:
            store = SqlDependencyStore(s, gate, 5.0)
            async with store.write_transaction():
                await store.insert(_edge(a.id, b.id))
                await store.insert(_edge(b.id, c.id))

        async with session_factory() as s:
            await s.delete(await s.get(Task, b.id))
            await s.commit()

        async with session_factory() as s:
            store = SqlDependencyStore(s, gate, 5.0)
            assert await store.get_edges_touching(a.id) == []
            assert await store.get_edges_touching(c.id) == []


class TestTaskLookup:
    @pytest.mark.asyncio
    async def test_get_tasks_skips_missing(self, session, seeded):
        lookup = SqlTaskLookup(session, 5.0)
        a = seeded["A"]
        found = await lookup.get_tasks([a.id, uuid.uuid4()])
        assert list(found) == [a.id]
        assert await lookup.get_tasks([]) == {}
        assert (await lookup.get_task(a.id)).title == "A"


class TestFailures:
    @pytest.mark.asyncio
    async def test_missing_schema_is_storage_error(self, tmp_path, gate):
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        try:
            async with create_session_factory(engine)() as s:
                with pytest.raises(StorageError):
                    await SqlDependencyStore(s, gate, 5.0).get_blocker_ids(uuid.uuid4())
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_lock_wait_times_out(self, session, gate):
        async with gate.hold(session, timeout=1.0):
            with pytest.raises(OperationCancelled):
                async with gate.hold(session, timeout=0.05):
                    pass

    @pytest.mark.asyncio
    async def test_lock_released_after_error(self, session, gate):
        with pytest.raises(ValueError):
            async with gate.hold(session, timeout=1.0):
                raise ValueError("boom")
        async with gate.hold(session, timeout=0.05):
            pass

    @pytest.mark.asyncio
    async def test_slow_store_call_is_cancelled(self, session, gate):
        store = SqlDependencyStore(session, gate, timeout=0.05)
        with pytest.raises(OperationCancelled):
            await store._call(asyncio.sleep(1), "slow_query")


def test_gate_selection():
    assert isinstance(make_write_gate("postgresql+asyncpg://db/taskgraph"), AdvisoryWriteGate)
    assert isinstance(make_write_gate("sqlite+aiosqlite:///x.db"), ProcessWriteGate)


def test_postgres_engines_pin_read_committed():
    assert engine_options("postgresql+asyncpg://db/taskgraph") == {
        "isolation_level": "READ COMMITTED"
    }
    assert engine_options("sqlite+aiosqlite:///x.db") == {}
