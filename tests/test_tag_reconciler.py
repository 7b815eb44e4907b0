from datetime import timedelta

import pytest

from tasktracker.exceptions import ValidationError
from tasktracker.schemas.task import TaskCreate
from tasktracker.services import tag_reconciler
from tasktracker.services import tasks as task_service


def test_plan_computes_minimal_delta():
    delta = tag_reconciler.plan(current=[1, 2, 3], desired=[3, 4, 4, 5])
    assert delta.to_add == [4, 5]
    assert delta.to_remove == [1, 2]


def test_plan_against_matching_set_is_empty():
    delta = tag_reconciler.plan(current=[2, 1], desired=[1, 2, 2])
    assert delta.is_empty


def test_plan_to_empty_removes_everything():
    delta = tag_reconciler.plan(current=[7, 8], desired=[])
    assert delta.to_add == []
    assert delta.to_remove == [7, 8]


@pytest.fixture
async def task_id(repo, seed, now):
    task = await task_service.create_task(
        repo,
        TaskCreate(title="Tag me", assignee_id=seed["alice"], due_date=now + timedelta(days=3)),
        now=now,
    )
    return task.id


async def test_reconcile_twice_is_idempotent(repo, seed, task_id):
    tags = seed["tags"]
    desired = [tags["bug"], tags["docs"]]

    async with repo.transaction():
        first = await tag_reconciler.reconcile(repo, task_id, await repo.current_tag_ids(task_id), desired)
    assert sorted(first.to_add) == sorted(desired)

    async with repo.transaction():
        second = await tag_reconciler.reconcile(repo, task_id, await repo.current_tag_ids(task_id), desired)
    assert second.is_empty
    assert sorted(await repo.current_tag_ids(task_id)) == sorted(desired)


async def test_reconcile_with_unknown_tag_applies_nothing(repo, seed, task_id):
    tags = seed["tags"]
    async with repo.transaction():
        await tag_reconciler.reconcile(repo, task_id, [], [tags["bug"]])

    with pytest.raises(ValidationError) as exc_info:
        async with repo.transaction():
            current = await repo.current_tag_ids(task_id)
            await tag_reconciler.reconcile(repo, task_id, current, [tags["feature"], 900, 901])

    assert exc_info.value.reasons == ["tags not found: 900, 901"]
    assert await repo.current_tag_ids(task_id) == [tags["bug"]]
