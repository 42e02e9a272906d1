from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from todocore.domain.common.errors import CrossParentMismatchError
from todocore.domain.tasks.dependencies import ParentLocks
from todocore.domain.tasks.repository import TaskRepository

logger = logging.getLogger(__name__)


class OrderingService:
    """Sibling order keys. Only relative order among siblings means anything."""

    def __init__(self, repo: TaskRepository, locks: ParentLocks) -> None:
        self._repo = repo
        self._locks = locks

    async def next_order(self, parent_id: str) -> float:
        siblings = await self._repo.children(parent_id)
        if not siblings:
            return 1
        return max(t.order or 0 for t in siblings) + 1

    async def reorder(self, parent_id: str, ordered_ids: Sequence[str]) -> None:
        """
        Rewrite every listed subtask's order to its position in `ordered_ids`.

        One write per task; siblings left out of the list keep whatever
        order they had.
        """
        async with self._locks.for_parent(parent_id):
            tasks = [await self._repo.require(task_id) for task_id in ordered_ids]
            for task in tasks:
                if task.parent_id != parent_id:
                    raise CrossParentMismatchError(f"Task {task.id} is not a subtask of {parent_id}")

            await asyncio.gather(
                *(self._repo.patch(task.id, {"order": position}) for position, task in enumerate(tasks))
            )

        logger.debug("reordered parent=%s count=%d", parent_id, len(tasks))
