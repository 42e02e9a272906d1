"""
Dependency edges between sibling subtasks, run against the in-memory store.
"""
from __future__ import annotations

import asyncio
import gc

import pytest

from fakes import FixedClock, SequentialIds
from todocore.domain.common.errors import (
    CircularDependencyError,
    CrossParentMismatchError,
    NotFoundError,
    ValidationError,
)
from todocore.domain.tasks.dependencies import ParentLocks
from todocore.domain.tasks.models import TaskPatch
from todocore.domain.tasks.service import TaskService
from todocore.infra.memory.document_store import InMemoryDocumentStore


async def _setup(n=3):
    store = InMemoryDocumentStore(SequentialIds())
    service = TaskService(store, FixedClock())
    parent = await service.create_task("Move house")
    subs = [await service.create_subtask(parent, f"step {i}") for i in range(n)]
    return store, service, parent, subs


def test_add_edge_updates_both_sides():
    async def run():
        _, service, _, (a, b, _) = await _setup()
        await service.add_dependency(a, b)
        assert (await service.get_task(a)).depends_on == (b,)
        assert (await service.get_task(b)).blocked_by == (a,)

    asyncio.run(run())


def test_add_edge_twice_leaves_one_edge():
    async def run():
        _, service, _, (a, b, _) = await _setup()
        await service.add_dependency(a, b)
        await service.add_dependency(a, b)
        assert (await service.get_task(a)).depends_on == (b,)
        assert (await service.get_task(b)).blocked_by == (a,)

    asyncio.run(run())


def test_remove_edge_restores_previous_documents():
    async def run():
        store, service, _, (a, b, _) = await _setup()
        before = (await store.get(a), await store.get(b))
        await service.add_dependency(a, b)
        await service.remove_dependency(a, b)
        assert (await store.get(a), await store.get(b)) == before

    asyncio.run(run())


def test_remove_missing_edge_is_noop():
    async def run():
        store, service, _, (a, b, _) = await _setup()
        before = await store.all()
        await service.remove_dependency(a, b)
        assert await store.all() == before

    asyncio.run(run())


def test_direct_cycle_rejected_without_writes():
    async def run():
        store, service, _, (a, b, _) = await _setup()
        await service.add_dependency(a, b)
        before = await store.all()
        with pytest.raises(CircularDependencyError):
            await service.add_dependency(b, a)
        assert await store.all() == before

    asyncio.run(run())


def test_self_dependency_rejected():
    async def run():
        _, service, _, (a, _, _) = await _setup()
        with pytest.raises(CircularDependencyError):
            await service.add_dependency(a, a)

    asyncio.run(run())


def test_three_node_cycle_is_not_detected():
    """Only the direct pair is checked, so A -> B -> C -> A goes through."""
    async def run():
        _, service, parent, (a, b, c) = await _setup()
        await service.add_dependency(a, b)
        await service.add_dependency(b, c)
        await service.add_dependency(c, a)
        adjacency = await service.graph.adjacency(parent)
        assert adjacency == {a: frozenset({b}), b: frozenset({c}), c: frozenset({a})}

    asyncio.run(run())


def test_cross_parent_edge_rejected():
    async def run():
        store, service, _, (a, _, _) = await _setup()
        other_parent = await service.create_task("Other project")
        stranger = await service.create_subtask(other_parent, "unrelated")
        before = await store.all()
        with pytest.raises(CrossParentMismatchError):
            await service.add_dependency(a, stranger)
        with pytest.raises(CrossParentMismatchError):
            await service.add_dependency(a, other_parent)
        assert await store.all() == before

    asyncio.run(run())


def test_top_level_tasks_cannot_depend_on_each_other():
    async def run():
        _, service, _, _ = await _setup(0)
        x = await service.create_task("x")
        y = await service.create_task("y")
        with pytest.raises(ValidationError):
            await service.add_dependency(x, y)

    asyncio.run(run())


def test_unknown_ids_raise_not_found():
    async def run():
        _, service, _, (a, _, _) = await _setup()
        with pytest.raises(NotFoundError):
            await service.add_dependency(a, "missing")
        with pytest.raises(NotFoundError):
            await service.add_dependency("missing", a)
        with pytest.raises(NotFoundError):
            await service.remove_dependency(a, "missing")

    asyncio.run(run())


def test_can_complete_checks_direct_dependencies_only():
    async def run():
        _, service, _, (a, b, c) = await _setup()
        assert await service.can_complete(a) is True

        await service.add_dependency(a, b)
        await service.add_dependency(b, c)
        assert await service.can_complete(a) is False

        # c is still open, but it is two hops away from a; b is closed
        # through the raw update path, which is not gated
        await service.update_task(b, TaskPatch(completed=True))
        assert await service.can_complete(a) is True
        assert await service.can_complete(b) is False

    asyncio.run(run())


def test_can_complete_unknown_task_is_false():
    async def run():
        _, service, _, _ = await _setup(0)
        assert await service.can_complete("nope") is False

    asyncio.run(run())


def test_concurrent_add_and_remove_keep_sides_in_step():
    async def run():
        _, service, _, (a, b, _) = await _setup()
        ops = []
        for i in range(20):
            ops.append(service.add_dependency(a, b) if i % 2 == 0 else service.remove_dependency(a, b))
        await asyncio.gather(*ops)
        task_a = await service.get_task(a)
        task_b = await service.get_task(b)
        assert (b in task_a.depends_on) == (a in task_b.blocked_by)

    asyncio.run(run())


def test_parent_locks_are_shared_while_held_and_dropped_after():
    async def run():
        locks = ParentLocks()
        lock = locks.for_parent("p")
        assert locks.for_parent("p") is lock
        async with lock:
            assert locks.for_parent("p").locked()
        del lock
        gc.collect()
        assert len(locks) == 0

    asyncio.run(run())


def test_service_reusable_across_event_loops():
    async def first():
        _, service, _, subs = await _setup()
        await service.add_dependency(subs[0], subs[1])
        return service, subs

    service, (a, b, c) = asyncio.run(first())

    async def second():
        await asyncio.gather(service.remove_dependency(a, b), service.add_dependency(c, b))
        assert (await service.get_task(b)).blocked_by == (c,)
        assert (await service.get_task(a)).depends_on == ()

    asyncio.run(second())
