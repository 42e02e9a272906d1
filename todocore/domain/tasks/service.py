from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Iterable, List, Optional, Sequence

from todocore.domain.common.errors import DependencyBlockedError, ValidationError
from todocore.domain.common.time import ensure_aware, to_millis
from todocore.domain.tasks.dependencies import DependencyGraph, ParentLocks
from todocore.domain.tasks.models import (
    CompletionResult,
    Priority,
    RecurrenceRule,
    Task,
    TaskPatch,
)
from todocore.domain.tasks.ordering import OrderingService
from todocore.domain.tasks.ports import Clock, DocumentStore
from todocore.domain.tasks.recurrence import next_occurrence
from todocore.domain.tasks.repository import TaskRepository
from todocore.domain.tasks.rules import validate_recurrence, validate_text

logger = logging.getLogger(__name__)


class TaskService:
    """
    Task lifecycle: creation, completion gating, recurrence spawning and
    archiving. No sqlite here, only the DocumentStore port.

    Recurrence is driven by completion events; nothing polls the clock.
    """

    def __init__(self, store: DocumentStore, clock: Clock, tz: Optional[tzinfo] = None) -> None:
        self._clock = clock
        self._repo = TaskRepository(store, tz or clock.now().tzinfo)
        self._locks = ParentLocks()
        self.graph = DependencyGraph(self._repo, self._locks)
        self.ordering = OrderingService(self._repo, self._locks)

    # ---- creation ----

    async def create_task(
        self,
        text: str,
        priority: Optional[Priority] = None,
        category_id: Optional[str] = None,
        due_date: Optional[datetime] = None,
        tags: Optional[Iterable[str]] = None,
        parent_id: Optional[str] = None,
        recurrence: Optional[RecurrenceRule] = None,
    ) -> str:
        validate_text(text)
        validate_recurrence(recurrence, parent_id)
        if due_date is not None:
            ensure_aware(due_date)

        order: float = 0
        if parent_id is not None:
            await self._repo.require(parent_id)
            order = await self.ordering.next_order(parent_id)

        task = Task(
            id="",
            text=text.strip(),
            priority=Priority(priority or Priority.MEDIUM),
            category_id=category_id,
            due_date=due_date,
            tags=tuple(tags or ()),
            parent_id=parent_id,
            order=order,
            is_recurring=recurrence is not None,
            recurrence=recurrence,
            created_at=self._clock.now(),
        )
        task_id = await self._repo.insert(task.to_document())
        logger.info("Task created id=%s parent=%s recurring=%s", task_id, parent_id, task.is_recurring)
        return task_id

    async def create_subtask(self, parent_id: str, text: str) -> str:
        return await self.create_task(text, parent_id=parent_id)

    async def create_instance(self, template_id: str) -> str:
        """Spawn the first instance of a template, due on the template's own due date."""
        template = await self._repo.require(template_id)
        if not template.is_template:
            raise ValidationError("Task is not a recurring template.")
        return await self._insert_instance(template, template.due_date)

    # ---- queries ----

    async def get_task(self, task_id: str) -> Task:
        return await self._repo.require(task_id)

    async def list_tasks(self, include_archived: bool = False) -> List[Task]:
        tasks = await self._repo.all()
        if include_archived:
            return tasks
        return [t for t in tasks if not t.archived]

    async def list_subtasks(self, parent_id: str) -> List[Task]:
        return sorted(await self._repo.children(parent_id), key=lambda t: t.order or 0)

    async def can_complete(self, subtask_id: str) -> bool:
        return await self.graph.can_complete(subtask_id)

    # ---- raw edits ----

    async def update_task(self, task_id: str, patch: TaskPatch) -> Task:
        """
        Plain field update. Note that this path can archive a task that was
        never completed; only archive_completed_top_level keeps that rule.
        """
        await self._repo.require(task_id)
        if patch.text is not None:
            validate_text(patch.text)
        if patch.due_date is not None:
            ensure_aware(patch.due_date)
        fields = patch.to_fields()
        if fields:
            await self._repo.patch(task_id, fields)
        return await self._repo.require(task_id)

    async def delete_task(self, task_id: str) -> None:
        task = await self._repo.require(task_id)
        if task.depends_on or task.blocked_by:
            await self.graph.detach(task_id)
        await self._repo.delete(task_id)
        logger.info("Task deleted id=%s", task_id)

    # ---- lifecycle ----

    async def complete_task(self, task_id: str) -> CompletionResult:
        """
        Mark a task completed.

        Subtasks are gated on their direct dependencies. Completing a
        recurring instance spawns the next one; a failed spawn is logged and
        reported on the result but the completion stands. Not idempotent:
        completing the same instance twice spawns twice.
        """
        task = await self._repo.require(task_id)

        if task.is_subtask:
            async with self._locks.for_parent(task.parent_id):
                task = await self._repo.require(task_id)
                if not await self.graph.dependencies_met(task):
                    raise DependencyBlockedError(f"Task {task_id} has unmet dependencies")
                await self._repo.patch(task_id, {"completed": True})
        else:
            await self._repo.patch(task_id, {"completed": True})

        completed = await self._repo.require(task_id)
        logger.info("Task completed id=%s", task_id)

        if not task.is_instance:
            return CompletionResult(task=completed)

        try:
            next_id = await self._spawn_next(task)
        except Exception as e:
            logger.exception("Failed to spawn next instance after completing %s", task_id)
            return CompletionResult(task=completed, spawn_error=str(e))
        return CompletionResult(task=completed, next_instance_id=next_id)

    async def uncomplete_task(self, task_id: str) -> Task:
        await self._repo.require(task_id)
        await self._repo.patch(task_id, {"completed": False})
        return await self._repo.require(task_id)

    async def archive_completed_top_level(self) -> int:
        tasks = await self._repo.all()
        done = [t for t in tasks if t.completed and not t.is_subtask and not t.archived]
        for t in done:
            await self._repo.patch(t.id, {"archived": True})
        logger.info("Archived %d completed tasks", len(done))
        return len(done)

    # ---- dependencies / ordering ----

    async def add_dependency(self, subtask_id: str, depends_on_id: str) -> None:
        await self.graph.add_edge(subtask_id, depends_on_id)

    async def remove_dependency(self, subtask_id: str, depends_on_id: str) -> None:
        await self.graph.remove_edge(subtask_id, depends_on_id)

    async def reorder_subtasks(self, parent_id: str, ordered_ids: Sequence[str]) -> None:
        await self.ordering.reorder(parent_id, ordered_ids)

    # ---- recurrence ----

    async def _spawn_next(self, instance: Task) -> Optional[str]:
        template = await self._repo.get(instance.parent_recurring_id)
        if template is None or not template.is_template:
            logger.info("No successor for %s: template gone or no longer recurring", instance.id)
            return None

        # template rule, instance due date
        next_due = next_occurrence(template.recurrence, instance.due_date)
        if next_due is None:
            logger.info("Series ended for template=%s", template.id)
            return None
        return await self._insert_instance(template, next_due)

    async def _insert_instance(self, template: Task, due_date: Optional[datetime]) -> str:
        new_id = await self._repo.insert(
            {
                "text": template.text,
                "completed": False,
                "createdAt": to_millis(self._clock.now()),
                "priority": template.priority.value,
                "categoryId": template.category_id,
                "dueDate": to_millis(due_date),
                "tags": list(template.tags),
                "parentRecurringId": template.id,
            }
        )
        logger.info("Recurring instance created id=%s template=%s due=%s", new_id, template.id, due_date)
        return new_id
