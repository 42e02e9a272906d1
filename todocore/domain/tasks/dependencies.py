"""
Precedence edges between sibling subtasks.

The graph has no storage of its own: edges live in the `dependsOn` and
`blockedBy` fields of the subtask documents. Keeping the two sides in step
takes two separate document writes, so every mutation for one parent runs
under that parent's lock. This serializes writers inside one process only;
two processes sharing a store can still leave the sides out of step.
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Dict, FrozenSet, Optional

from todocore.domain.common.errors import (
    CircularDependencyError,
    CrossParentMismatchError,
    ValidationError,
)
from todocore.domain.tasks.models import Task
from todocore.domain.tasks.repository import TaskRepository

logger = logging.getLogger(__name__)


class ParentLocks:
    """
    One asyncio.Lock per parent id, created on first use.

    Entries are held weakly and vanish once no coroutine holds or waits on
    the lock. A lock binds to the event loop it is first contended on, so a
    ParentLocks (and the TaskService owning it) belongs to one loop.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[Optional[str], asyncio.Lock] = weakref.WeakValueDictionary()

    def for_parent(self, parent_id: Optional[str]) -> asyncio.Lock:
        lock = self._locks.get(parent_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[parent_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


class DependencyGraph:
    def __init__(self, repo: TaskRepository, locks: ParentLocks) -> None:
        self._repo = repo
        self._locks = locks

    async def add_edge(self, from_id: str, to_id: str) -> None:
        """Record that `from_id` depends on `to_id`."""
        first = await self._repo.require(from_id)
        async with self._locks.for_parent(first.parent_id):
            task = await self._repo.require(from_id)
            target = await self._repo.require(to_id)
            self._check_siblings(task, target)

            # Only the direct pair is checked; longer cycles such as
            # A -> B -> C -> A are accepted.
            if from_id == to_id or from_id in target.depends_on:
                raise CircularDependencyError("Circular dependency detected")

            if to_id not in task.depends_on:
                await self._repo.patch(from_id, {"dependsOn": [*task.depends_on, to_id]})
            if from_id not in target.blocked_by:
                await self._repo.patch(to_id, {"blockedBy": [*target.blocked_by, from_id]})

        logger.debug("edge added %s -> %s parent=%s", from_id, to_id, task.parent_id)

    async def remove_edge(self, from_id: str, to_id: str) -> None:
        first = await self._repo.require(from_id)
        async with self._locks.for_parent(first.parent_id):
            task = await self._repo.require(from_id)
            target = await self._repo.require(to_id)

            if to_id in task.depends_on:
                await self._repo.patch(from_id, {"dependsOn": [i for i in task.depends_on if i != to_id]})
            if from_id in target.blocked_by:
                await self._repo.patch(to_id, {"blockedBy": [i for i in target.blocked_by if i != from_id]})

        logger.debug("edge removed %s -> %s", from_id, to_id)

    async def can_complete(self, task_id: str) -> bool:
        """
        True when every directly listed dependency is completed.

        Dependencies of dependencies are not consulted. An unknown task
        yields False, and a dependency id that no longer resolves counts as
        unmet.
        """
        task = await self._repo.get(task_id)
        if task is None:
            return False
        return await self.dependencies_met(task)

    async def dependencies_met(self, task: Task) -> bool:
        if not task.depends_on:
            return True
        deps = await asyncio.gather(*(self._repo.get(dep_id) for dep_id in task.depends_on))
        return all(dep is not None and dep.completed for dep in deps)

    async def adjacency(self, parent_id: str) -> Dict[str, FrozenSet[str]]:
        """Explicit adjacency map (task -> direct dependencies) for one parent."""
        return {t.id: frozenset(t.depends_on) for t in await self._repo.children(parent_id)}

    async def detach(self, task_id: str) -> None:
        """Drop every edge touching `task_id`, on both sides."""
        first = await self._repo.require(task_id)
        async with self._locks.for_parent(first.parent_id):
            task = await self._repo.require(task_id)
            for dep_id in task.depends_on:
                dep = await self._repo.get(dep_id)
                if dep is not None and task_id in dep.blocked_by:
                    await self._repo.patch(dep_id, {"blockedBy": [i for i in dep.blocked_by if i != task_id]})
            for blocked_id in task.blocked_by:
                blocked = await self._repo.get(blocked_id)
                if blocked is not None and task_id in blocked.depends_on:
                    await self._repo.patch(
                        blocked_id, {"dependsOn": [i for i in blocked.depends_on if i != task_id]}
                    )
            if task.depends_on or task.blocked_by:
                await self._repo.patch(task_id, {"dependsOn": [], "blockedBy": []})

    @staticmethod
    def _check_siblings(task: Task, target: Task) -> None:
        if task.parent_id != target.parent_id:
            raise CrossParentMismatchError(
                "Dependencies can only be created between subtasks of the same parent"
            )
        if task.parent_id is None:
            raise ValidationError("Dependencies can only link subtasks.")
