from __future__ import annotations

from typing import Optional

from todocore.domain.common.errors import ValidationError
from todocore.domain.tasks.models import RecurrenceRule, RecurrenceType


def validate_text(text: str) -> None:
    if not text or not text.strip():
        raise ValidationError("Task text is required.")
    if len(text.strip()) > 2000:
        raise ValidationError("Task text is too long (max 2000 chars).")


def validate_recurrence(rule: Optional[RecurrenceRule], parent_id: Optional[str]) -> None:
    if rule is None:
        return
    if parent_id is not None:
        raise ValidationError("Subtasks cannot recur.")
    if rule.interval < 1:
        raise ValidationError("Recurrence interval must be a positive integer.")
    if rule.day_of_month is not None:
        if rule.type is not RecurrenceType.MONTHLY:
            raise ValidationError("day_of_month only applies to monthly recurrence.")
        if not 1 <= rule.day_of_month <= 31:
            raise ValidationError("day_of_month must be between 1 and 31.")
    if rule.days_of_week and rule.type is not RecurrenceType.WEEKLY:
        raise ValidationError("days_of_week only applies to weekly recurrence.")
