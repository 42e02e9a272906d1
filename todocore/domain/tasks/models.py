from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from todocore.domain.common.time import from_millis, to_millis


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class Weekday(str, Enum):
    # declaration order matches datetime.weekday()
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def weekday_number(self) -> int:
        return list(Weekday).index(self)


@dataclass(frozen=True)
class RecurrenceRule:
    type: RecurrenceType
    interval: int = 1
    end_date: Optional[datetime] = None
    days_of_week: Tuple[Weekday, ...] = ()
    day_of_month: Optional[int] = None


@dataclass(frozen=True)
class Task:
    """
    One version of a task document.

    Every store mutation yields a new Task; instances are never changed in place.
    """

    id: str
    text: str
    completed: bool = False
    archived: bool = False
    priority: Priority = Priority.MEDIUM
    category_id: Optional[str] = None
    due_date: Optional[datetime] = None
    tags: Tuple[str, ...] = ()
    parent_id: Optional[str] = None
    order: float = 0
    depends_on: Tuple[str, ...] = ()
    blocked_by: Tuple[str, ...] = ()
    is_recurring: bool = False
    recurrence: Optional[RecurrenceRule] = None
    parent_recurring_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_subtask(self) -> bool:
        return self.parent_id is not None

    @property
    def is_template(self) -> bool:
        return self.is_recurring and self.recurrence is not None

    @property
    def is_instance(self) -> bool:
        return self.parent_recurring_id is not None

    @classmethod
    def from_document(cls, doc_id: str, doc: Dict[str, Any], tz=timezone.utc) -> "Task":
        rule = None
        if doc.get("recurrenceType"):
            rule = RecurrenceRule(
                type=RecurrenceType(doc["recurrenceType"]),
                interval=int(doc.get("recurrenceInterval") or 1),
                end_date=from_millis(doc.get("recurrenceEndDate"), tz),
                days_of_week=tuple(Weekday(d.lower()) for d in doc.get("recurrenceDaysOfWeek") or ()),
                day_of_month=doc.get("recurrenceDayOfMonth"),
            )
        return cls(
            id=doc_id,
            text=doc.get("text", ""),
            completed=bool(doc.get("completed", False)),
            archived=bool(doc.get("archived", False)),
            priority=Priority(doc.get("priority") or Priority.MEDIUM.value),
            category_id=doc.get("categoryId"),
            due_date=from_millis(doc.get("dueDate"), tz),
            tags=tuple(doc.get("tags") or ()),
            parent_id=doc.get("parentId"),
            order=doc.get("order") or 0,
            depends_on=tuple(doc.get("dependsOn") or ()),
            blocked_by=tuple(doc.get("blockedBy") or ()),
            is_recurring=bool(doc.get("isRecurring", False)),
            recurrence=rule,
            parent_recurring_id=doc.get("parentRecurringId"),
            created_at=from_millis(doc.get("createdAt"), tz),
        )

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "text": self.text,
            "completed": self.completed,
            "archived": self.archived,
            "priority": self.priority.value,
            "categoryId": self.category_id,
            "dueDate": to_millis(self.due_date),
            "tags": list(self.tags),
            "parentId": self.parent_id,
            "isSubtask": self.is_subtask,
            "order": self.order,
            "dependsOn": list(self.depends_on),
            "blockedBy": list(self.blocked_by),
            "isRecurring": self.is_recurring,
            "parentRecurringId": self.parent_recurring_id,
            "createdAt": to_millis(self.created_at),
        }
        if self.recurrence is not None:
            rule = self.recurrence
            doc.update(
                recurrenceType=rule.type.value,
                recurrenceInterval=rule.interval,
                recurrenceEndDate=to_millis(rule.end_date),
                recurrenceDaysOfWeek=[d.value for d in rule.days_of_week] or None,
                recurrenceDayOfMonth=rule.day_of_month,
            )
        return doc


@dataclass(frozen=True)
class TaskPatch:
    """Raw field update; None means 'leave unchanged'."""

    text: Optional[str] = None
    completed: Optional[bool] = None
    archived: Optional[bool] = None
    priority: Optional[Priority] = None
    category_id: Optional[str] = None
    due_date: Optional[datetime] = None
    tags: Optional[Tuple[str, ...]] = None

    def to_fields(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        if self.text is not None:
            fields["text"] = self.text.strip()
        if self.completed is not None:
            fields["completed"] = self.completed
        if self.archived is not None:
            fields["archived"] = self.archived
        if self.priority is not None:
            fields["priority"] = Priority(self.priority).value
        if self.category_id is not None:
            fields["categoryId"] = self.category_id
        if self.due_date is not None:
            fields["dueDate"] = to_millis(self.due_date)
        if self.tags is not None:
            fields["tags"] = list(self.tags)
        return fields


@dataclass(frozen=True)
class CompletionResult:
    task: Task
    next_instance_id: Optional[str] = None
    spawn_error: Optional[str] = field(default=None, compare=False)
