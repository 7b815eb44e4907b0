"""
Overdue classification.

A task is overdue when it is not Done and its due date is strictly before the
reference time. Comparison is on the full UTC timestamp, so a task due exactly
``now`` is still on time. Every overdue count in the project goes through
``is_overdue`` or its SQL twin ``overdue_condition``.
"""
from datetime import datetime

from sqlalchemy import and_

from tasktracker.models.tasks import Task, TaskStatus
from tasktracker.utils.clock import as_utc, utcnow

OVERDUE = "Overdue"


def is_overdue(task: Task, now: datetime | None = None) -> bool:
    now = as_utc(now) if now else utcnow()
    return task.status != TaskStatus.DONE and as_utc(task.due_date) < now


def effective_status(task: Task, now: datetime | None = None) -> str:
    if is_overdue(task, now):
        return OVERDUE
    return TaskStatus(task.status).value


def overdue_condition(now: datetime | None = None):
    now = as_utc(now) if now else utcnow()
    return and_(Task.status != TaskStatus.DONE, Task.due_date < now)
