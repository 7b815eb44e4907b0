"""
Query filter composition.

Each supplied criterion narrows the result; omitted ones add nothing. Tag ids
match a task holding at least one of them, and the tag criterion is ANDed with
the rest like any other.
"""
import logging
from datetime import datetime

from pydantic import BaseModel, Field
from sqlalchemy import and_, exists, true
from sqlalchemy.future import select

from tasktracker.models.tasks import Task, TaskTag
from tasktracker.services.validation import parse_status
from tasktracker.utils.clock import as_utc

logger = logging.getLogger(__name__)


class TaskFilter(BaseModel):
    status: str | None = None
    assignee_id: int | None = None
    due_before: datetime | None = None
    due_after: datetime | None = None
    tag_ids: list[int] = Field(default_factory=list)


def build_conditions(criteria: TaskFilter) -> list:
    conditions = []

    if criteria.status:
        status = parse_status(criteria.status)
        if status is None:
            # lenient by contract: callers wanting strictness pre-validate
            logger.debug("Ignoring unparsable status filter %r", criteria.status)
        else:
            conditions.append(Task.status == status)

    if criteria.assignee_id is not None:
        conditions.append(Task.assignee_id == criteria.assignee_id)

    if criteria.due_before is not None:
        conditions.append(Task.due_date <= as_utc(criteria.due_before))

    if criteria.due_after is not None:
        conditions.append(Task.due_date >= as_utc(criteria.due_after))

    if criteria.tag_ids:
        conditions.append(
            exists().where(
                TaskTag.task_id == Task.id,
                TaskTag.tag_id.in_(criteria.tag_ids),
            )
        )

    return conditions


def compose(criteria: TaskFilter):
    """The single predicate for ``criteria``; always-true when nothing is set."""
    conditions = build_conditions(criteria)
    if not conditions:
        return true()
    return and_(*conditions)


def filtered_query(criteria: TaskFilter, *extra_conditions):
    return (
        select(Task)
        .filter(compose(criteria), *extra_conditions)
        .order_by(Task.id)
    )
