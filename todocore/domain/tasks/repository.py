from __future__ import annotations

import logging
from datetime import timezone
from typing import Any, Dict, List, Optional

from todocore.domain.common.errors import NotFoundError
from todocore.domain.tasks.models import Task
from todocore.domain.tasks.ports import DocumentStore

logger = logging.getLogger(__name__)


class TaskRepository:
    """Task-typed view over the raw document store."""

    def __init__(self, store: DocumentStore, tz=timezone.utc) -> None:
        self._store = store
        self._tz = tz

    async def get(self, task_id: str) -> Optional[Task]:
        doc = await self._store.get(task_id)
        if doc is None:
            return None
        return Task.from_document(task_id, doc, self._tz)

    async def require(self, task_id: str) -> Task:
        task = await self.get(task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}")
        return task

    async def insert(self, fields: Dict[str, Any]) -> str:
        return await self._store.insert(fields)

    async def patch(self, task_id: str, fields: Dict[str, Any]) -> None:
        logger.debug("patch task=%s fields=%s", task_id, sorted(fields))
        await self._store.patch(task_id, fields)

    async def delete(self, task_id: str) -> None:
        await self._store.delete(task_id)

    async def children(self, parent_id: str) -> List[Task]:
        rows = await self._store.query_by_field("parentId", parent_id)
        return [Task.from_document(doc_id, doc, self._tz) for doc_id, doc in rows]

    async def all(self) -> List[Task]:
        rows = await self._store.all()
        return [Task.from_document(doc_id, doc, self._tz) for doc_id, doc in rows]
