import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm.exc import StaleDataError

from tasktracker.exceptions import ConflictError, NotFoundError, ValidationError
from tasktracker.models.tasks import Task, TaskStatus
from tasktracker.repository import TaskRepository
from tasktracker.schemas.task import TaskCreate, TaskUpdate
from tasktracker.services import tag_reconciler
from tasktracker.services.filters import TaskFilter
from tasktracker.services.overdue import overdue_condition
from tasktracker.services.validation import (
    INVALID_STATUS,
    check_assignee,
    check_due_date,
    check_priority,
    check_status,
    check_tags,
    check_title,
    parse_priority,
    parse_status,
)
from tasktracker.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class StatusChange:
    """Outcome of change_status; ``changed=False`` is a soft failure, not an error."""
    changed: bool
    task: Task | None = None
    reason: str | None = None


def _now(now: datetime | None) -> datetime:
    return as_utc(now) if now else utcnow()


def _raise_if_rejected(reasons: list[str | None], action: str) -> None:
    rejected = [r for r in reasons if r]
    if rejected:
        logger.warning("Rejected %s: %s", action, "; ".join(rejected))
        raise ValidationError(rejected)


def apply_status(task: Task, new_status: TaskStatus, now: datetime) -> None:
    """
    Move ``task`` to ``new_status`` keeping completed_at set exactly while Done.

    Entering Done stamps ``now``; leaving Done clears the stamp; staying on
    either side leaves it alone.
    """
    previous = task.status
    if new_status == TaskStatus.DONE and previous != TaskStatus.DONE:
        task.completed_at = now
    elif new_status != TaskStatus.DONE and previous == TaskStatus.DONE:
        task.completed_at = None
    task.status = new_status
    enforce_completion_invariant(task, now)


def enforce_completion_invariant(task: Task, now: datetime) -> None:
    if task.status == TaskStatus.DONE and task.completed_at is None:
        task.completed_at = now
    elif task.status != TaskStatus.DONE and task.completed_at is not None:
        task.completed_at = None


async def get_task(repo: TaskRepository, task_id: int) -> Task:
    task = await repo.get_by_id(task_id)
    if not task:
        raise NotFoundError("Task", task_id)
    return task


async def list_tasks(repo: TaskRepository, criteria: TaskFilter | None = None) -> list[Task]:
    return await repo.get_all_filtered(criteria or TaskFilter())


async def list_overdue_tasks(repo: TaskRepository, now: datetime | None = None) -> list[Task]:
    return await repo.get_all_filtered(TaskFilter(), overdue_condition(_now(now)))


async def create_task(repo: TaskRepository, task_data: TaskCreate, now: datetime | None = None) -> Task:
    now = _now(now)
    tag_ids = tag_reconciler.dedupe(task_data.tag_ids)

    async with repo.transaction():
        _raise_if_rejected([
            check_title(task_data.title),
            await check_assignee(repo, task_data.assignee_id),
            check_due_date(task_data.due_date, now),
            check_priority(task_data.priority),
            await check_tags(repo, tag_ids),
        ], "task create")

        new_task = Task(
            title=task_data.title,
            description=task_data.description or "",
            assignee_id=task_data.assignee_id,
            created_at=now,
            due_date=as_utc(task_data.due_date),
            completed_at=None,
            status=TaskStatus.NEW,
            priority=parse_priority(task_data.priority),
            version=1,
        )
        await repo.insert(new_task)
        await tag_reconciler.reconcile(repo, new_task.id, [], tag_ids)

    logger.info("Task created id=%s assignee=%s tags=%s", new_task.id, new_task.assignee_id, tag_ids)
    return await get_task(repo, new_task.id)


async def update_task(
    repo: TaskRepository,
    task_id: int,
    update_data: TaskUpdate,
    now: datetime | None = None,
) -> Task:
    """
    PATCH a task: only fields present in ``update_data`` are touched.

    Every rule, including the tag delta, is checked before the first
    mutation, and the field changes and tag changes commit together.
    """
    now = _now(now)
    changes = update_data.changes()
    expected_version = changes.pop("version", None)

    try:
        async with repo.transaction():
            task = await get_task(repo, task_id)

            if expected_version is not None and expected_version != task.version:
                raise ConflictError(
                    f"Task {task_id} is at version {task.version}, not {expected_version}"
                )
            if not changes:
                return task

            reasons = []
            if "title" in changes:
                reasons.append(check_title(changes["title"]))
            if "assignee_id" in changes:
                reasons.append(await check_assignee(repo, changes["assignee_id"]))
            if "due_date" in changes:
                reasons.append(check_due_date(changes["due_date"], task.created_at))
            if "priority" in changes:
                reasons.append(check_priority(changes["priority"]))
            if "status" in changes:
                reasons.append(check_status(changes["status"]))

            delta = None
            if "tag_ids" in changes:
                current = await repo.current_tag_ids(task.id)
                delta = tag_reconciler.plan(current, changes["tag_ids"])
                reasons.append(await tag_reconciler.validate(repo, delta))

            _raise_if_rejected(reasons, f"update of task {task_id}")

            if "title" in changes:
                task.title = changes["title"]
            if "description" in changes:
                task.description = changes["description"]
            if "assignee_id" in changes:
                task.assignee_id = changes["assignee_id"]
            if "due_date" in changes:
                task.due_date = as_utc(changes["due_date"])
            if "priority" in changes:
                task.priority = parse_priority(changes["priority"])
            if "status" in changes:
                apply_status(task, parse_status(changes["status"]), now)
            else:
                enforce_completion_invariant(task, now)

            task.version = task.version + 1
            await repo.update(task)

            if delta is not None:
                await tag_reconciler.apply(repo, task.id, delta)
    except StaleDataError as exc:
        raise ConflictError(f"Task {task_id} was modified concurrently") from exc

    logger.info("Task updated id=%s fields=%s", task_id, sorted(changes))
    return await get_task(repo, task_id)


async def change_status(
    repo: TaskRepository,
    task_id: int,
    new_status: str,
    now: datetime | None = None,
) -> StatusChange:
    now = _now(now)

    try:
        async with repo.transaction():
            task = await get_task(repo, task_id)
            status = parse_status(new_status)
            if status is None:
                logger.warning("Ignored status change of task %s to %r", task_id, new_status)
                return StatusChange(changed=False, task=task, reason=INVALID_STATUS)

            apply_status(task, status, now)
            task.version = task.version + 1
            await repo.update(task)
    except StaleDataError as exc:
        raise ConflictError(f"Task {task_id} was modified concurrently") from exc

    logger.info("Task status changed id=%s status=%s", task_id, status.value)
    return StatusChange(changed=True, task=await get_task(repo, task_id))


async def delete_task(repo: TaskRepository, task_id: int) -> bool:
    """Remove the task and its tag associations; False when there was nothing to delete."""
    async with repo.transaction():
        if await repo.get_by_id(task_id) is None:
            logger.warning("Task %s not found for deletion", task_id)
            return False
        await repo.delete(task_id)

    logger.info("Task deleted id=%s", task_id)
    return True
