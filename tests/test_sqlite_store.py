"""
SQLite document store (aiosqlite) and the service running on top of it.
"""
from __future__ import annotations

import asyncio
import os
import tempfile
from datetime import datetime, timezone

import pytest

from fakes import FixedClock
from todocore.domain.common.errors import NotFoundError
from todocore.domain.tasks.models import RecurrenceRule, RecurrenceType, Weekday
from todocore.domain.tasks.service import TaskService
from todocore.infra.db.connection import Database
from todocore.infra.db.repo.documents_sqlite import SqliteDocumentStore


def _with_store(body):
    async def run():
        with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
            path = f.name
        try:
            store = SqliteDocumentStore(Database(path))
            await store.init()
            await body(store)
        finally:
            for suffix in ("", "-wal", "-shm"):
                if os.path.exists(path + suffix):
                    os.unlink(path + suffix)

    asyncio.run(run())


def test_insert_get_patch_delete():
    async def body(store):
        doc_id = await store.insert({"text": "a", "completed": False, "tags": ["x"]})
        assert await store.get(doc_id) == {"text": "a", "completed": False, "tags": ["x"]}

        await store.patch(doc_id, {"completed": True})
        assert (await store.get(doc_id))["completed"] is True
        assert (await store.get(doc_id))["text"] == "a"

        await store.delete(doc_id)
        assert await store.get(doc_id) is None
        with pytest.raises(NotFoundError):
            await store.patch(doc_id, {"completed": False})
        with pytest.raises(NotFoundError):
            await store.delete(doc_id)

    _with_store(body)


def test_query_by_field_uses_parent_column_and_json():
    async def body(store):
        parent = await store.insert({"text": "p"})
        child = await store.insert({"text": "c", "parentId": parent})
        moved = await store.insert({"text": "m"})
        await store.patch(moved, {"parentId": parent})
        await store.insert({"text": "i", "parentRecurringId": parent})

        children = await store.query_by_field("parentId", parent)
        assert sorted(doc_id for doc_id, _ in children) == sorted([child, moved])

        instances = await store.query_by_field("parentRecurringId", parent)
        assert [doc["text"] for _, doc in instances] == ["i"]
        assert len(await store.all()) == 4

    _with_store(body)


def test_service_end_to_end_on_sqlite():
    async def body(store):
        service = TaskService(store, FixedClock())
        monday = datetime(2025, 2, 3, 9, 0, tzinfo=timezone.utc)

        parent = await service.create_task("Trip")
        a = await service.create_subtask(parent, "book")
        b = await service.create_subtask(parent, "pack")
        await service.add_dependency(b, a)
        assert await service.can_complete(b) is False
        await service.complete_task(a)
        assert await service.can_complete(b) is True

        await service.reorder_subtasks(parent, [b, a])
        assert [t.id for t in await service.list_subtasks(parent)] == [b, a]

        rule = RecurrenceRule(
            type=RecurrenceType.WEEKLY, days_of_week=(Weekday.MONDAY, Weekday.FRIDAY)
        )
        template = await service.create_task("Review", due_date=monday, recurrence=rule)
        loaded = await service.get_task(template)
        assert loaded.recurrence == rule
        instance = await service.create_instance(template)
        result = await service.complete_task(instance)
        spawned = await service.get_task(result.next_instance_id)
        assert spawned.due_date == datetime(2025, 2, 7, 9, 0, tzinfo=timezone.utc)

    _with_store(body)
