"""
Tag reconciliation: the minimal add/remove delta between the tags a task has
and the tags it should have.
"""
from dataclasses import dataclass, field
from typing import Iterable

from tasktracker.exceptions import ValidationError
from tasktracker.services.validation import check_tags


@dataclass(frozen=True)
class TagDelta:
    to_add: list[int] = field(default_factory=list)
    to_remove: list[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


def dedupe(tag_ids: Iterable[int]) -> list[int]:
    return list(dict.fromkeys(tag_ids))


def plan(current: Iterable[int], desired: Iterable[int]) -> TagDelta:
    current_ids = dedupe(current)
    desired_ids = dedupe(desired)
    current_set, desired_set = set(current_ids), set(desired_ids)
    return TagDelta(
        to_add=[t for t in desired_ids if t not in current_set],
        to_remove=[t for t in current_ids if t not in desired_set],
    )


async def validate(repo, delta: TagDelta) -> str | None:
    # ids being removed are already attached, so only additions can dangle
    return await check_tags(repo, delta.to_add)


async def apply(repo, task_id: int, delta: TagDelta) -> None:
    if delta.to_remove:
        await repo.detach_tags(task_id, delta.to_remove)
    if delta.to_add:
        await repo.attach_tags(task_id, delta.to_add)


async def reconcile(repo, task_id: int, current: Iterable[int], desired: Iterable[int]) -> TagDelta:
    """Validate then apply; on an unknown tag id nothing is written."""
    delta = plan(current, desired)
    if delta.is_empty:
        return delta
    reason = await validate(repo, delta)
    if reason:
        raise ValidationError(reason)
    await apply(repo, task_id, delta)
    return delta
