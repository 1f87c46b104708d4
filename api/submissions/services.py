from datetime import datetime, timedelta
from typing import Optional

from django.db import transaction
from django.utils import timezone

from app.common.keys import t
from .models import SubmissionChecklist

URGENCY_LEVELS = ('overdue', 'critical', 'urgent', 'soon', 'normal')


class InvalidItemIndex(IndexError):
    pass


def urgency(deadline: Optional[datetime], now: Optional[datetime] = None) -> Optional[str]:
    """Deadline proximity: overdue, critical (<24h), urgent (<48h), soon (<7d) or normal."""
    if deadline is None:
        return None
    now = now or timezone.now()
    remaining = deadline - now
    if remaining < timedelta(0):
        return 'overdue'
    if remaining < timedelta(hours=24):
        return 'critical'
    if remaining < timedelta(hours=48):
        return 'urgent'
    if remaining < timedelta(days=7):
        return 'soon'
    return 'normal'


def urgency_label(level: Optional[str]) -> str:
    return t(f'urgency.{level}') if level else ''


def set_item_completed(checklist_id: int, index: int, completed: bool, *, org=None) -> SubmissionChecklist:
    """Mark one checklist item (by position) done or not done and refresh the percentage.

    Raises ``SubmissionChecklist.DoesNotExist`` or ``InvalidItemIndex``.
    """
    with transaction.atomic():
        qs = SubmissionChecklist.objects.select_for_update()
        if org is not None:
            qs = qs.filter(org=org)
        checklist = qs.get(pk=checklist_id)
        items = list(checklist.items or [])
        if index < 0 or index >= len(items) or not isinstance(items[index], dict):
            raise InvalidItemIndex(index)
        item = dict(items[index])
        item['completed'] = bool(completed)
        if completed:
            item['completed_at'] = timezone.now().isoformat()
        else:
            item.pop('completed_at', None)
        items[index] = item
        checklist.items = items
        checklist.refresh_percentage()
        checklist.save(update_fields=['items', 'completion_percentage', 'updated_at'])
    return checklist
