"""
Field rules for tasks.

Every ``check_*`` function returns ``None`` when the value is acceptable and a
rejection reason otherwise. ``parse_*`` helpers turn loose input into enum
members and return ``None`` when they cannot. Nothing here writes to storage.
"""
import re
from datetime import datetime
from typing import Iterable

from tasktracker.models.tasks import TaskPriority, TaskStatus
from tasktracker.utils.clock import as_utc

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200

INVALID_TITLE = "invalid title length"
ASSIGNEE_NOT_FOUND = "assignee not found"
DUE_BEFORE_CREATED = "due date before creation date"
INVALID_PRIORITY = "invalid priority"
INVALID_STATUS = "invalid status"
TAGS_NOT_FOUND = "tags not found"

_SEPARATORS = re.compile(r"[\s_\-]+")


def _normalize(raw: str) -> str:
    return _SEPARATORS.sub("", raw).lower()


def parse_status(raw) -> TaskStatus | None:
    if isinstance(raw, TaskStatus):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    key = _normalize(raw)
    for status in TaskStatus:
        if key in (_normalize(status.value), _normalize(status.name)):
            return status
    return None


def parse_priority(raw) -> TaskPriority | None:
    if isinstance(raw, TaskPriority):
        return raw
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        for priority in TaskPriority:
            if priority.rank == raw:
                return priority
        return None
    if not isinstance(raw, str) or not raw.strip():
        return None
    key = raw.strip()
    if key.isdigit():
        return parse_priority(int(key))
    for priority in TaskPriority:
        if key.lower() == priority.value.lower():
            return priority
    return None


def check_title(title: str | None) -> str | None:
    if title is None or not (TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH):
        return INVALID_TITLE
    return None


def check_due_date(due_date: datetime, created_at: datetime) -> str | None:
    if as_utc(due_date) < as_utc(created_at):
        return DUE_BEFORE_CREATED
    return None


def check_priority(raw) -> str | None:
    return INVALID_PRIORITY if parse_priority(raw) is None else None


def check_status(raw) -> str | None:
    return INVALID_STATUS if parse_status(raw) is None else None


async def check_assignee(repo, assignee_id: int) -> str | None:
    if not await repo.user_exists(assignee_id):
        return f"{ASSIGNEE_NOT_FOUND}: {assignee_id}"
    return None


async def check_tags(repo, tag_ids: Iterable[int]) -> str | None:
    """Name every id that does not resolve, not just the first one."""
    wanted = list(tag_ids)
    if not wanted:
        return None
    found = set(await repo.existing_tag_ids(wanted))
    missing = [tag_id for tag_id in wanted if tag_id not in found]
    if missing:
        return f"{TAGS_NOT_FOUND}: {', '.join(str(m) for m in missing)}"
    return None
