from contextlib import asynccontextmanager
from typing import Iterable

from sqlalchemy import delete, insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import joinedload, selectinload

from tasktracker.models.tasks import Tag, Task, TaskTag
from tasktracker.models.user import User
from tasktracker.services.filters import TaskFilter, filtered_query


def _with_relations(query):
    # populate_existing so tags written through Core show up on a re-read
    return query.options(
        selectinload(Task.tags),
        joinedload(Task.assignee),
    ).execution_options(populate_existing=True)


class TaskRepository:
    """
    Storage collaborator for the task lifecycle.

    Writes only flush; ``transaction()`` owns the commit/rollback so one
    lifecycle operation is one unit of work.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def transaction(self):
        try:
            yield self
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    # ---- tasks ----

    async def get_by_id(self, task_id: int) -> Task | None:
        result = await self.db.execute(
            _with_relations(select(Task).filter(Task.id == task_id))
        )
        return result.scalars().unique().first()

    async def get_all_filtered(self, criteria: TaskFilter | None = None, *extra_conditions) -> list[Task]:
        query = filtered_query(criteria or TaskFilter(), *extra_conditions)
        result = await self.db.execute(_with_relations(query))
        return list(result.scalars().unique().all())

    async def insert(self, task: Task) -> Task:
        self.db.add(task)
        await self.db.flush()
        return task

    async def update(self, task: Task) -> None:
        await self.db.flush()

    async def delete(self, task_id: int) -> None:
        await self.db.execute(delete(TaskTag).where(TaskTag.task_id == task_id))
        await self.db.execute(delete(Task).where(Task.id == task_id))

    # ---- referenced entities ----

    async def user_exists(self, user_id: int) -> bool:
        result = await self.db.execute(select(User.id).filter(User.id == user_id))
        return result.scalar() is not None

    async def existing_tag_ids(self, tag_ids: Iterable[int]) -> list[int]:
        ids = list(tag_ids)
        if not ids:
            return []
        result = await self.db.execute(select(Tag.id).filter(Tag.id.in_(ids)))
        return list(result.scalars().all())

    # ---- task/tag associations ----

    async def current_tag_ids(self, task_id: int) -> list[int]:
        result = await self.db.execute(
            select(TaskTag.tag_id).filter(TaskTag.task_id == task_id).order_by(TaskTag.tag_id)
        )
        return list(result.scalars().all())

    async def attach_tags(self, task_id: int, tag_ids: Iterable[int]) -> None:
        rows = [{"task_id": task_id, "tag_id": tag_id} for tag_id in tag_ids]
        if rows:
            await self.db.execute(insert(TaskTag), rows)

    async def detach_tags(self, task_id: int, tag_ids: Iterable[int]) -> None:
        ids = list(tag_ids)
        if ids:
            await self.db.execute(
                delete(TaskTag).where(TaskTag.task_id == task_id, TaskTag.tag_id.in_(ids))
            )
