from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from tasktracker.dependencies import get_repository
from tasktracker.repository import TaskRepository
from tasktracker.schemas.task import (
    StatusChangeResponse, StatusCount, Task as TaskSchema, TaskCreate, TaskUpdate,
)
from tasktracker.services import reports as report_service
from tasktracker.services import tasks as task_service
from tasktracker.services.filters import TaskFilter
from tasktracker.utils.clock import utcnow

router = APIRouter(prefix="/tasks", tags=["tasks"])

@router.post("/", response_model=TaskSchema, status_code=status.HTTP_201_CREATED)
async def create_task(task_data: TaskCreate, repo: TaskRepository = Depends(get_repository)):
    task = await task_service.create_task(repo, task_data)
    return TaskSchema.from_task(task)

@router.get("/", response_model=list[TaskSchema])
async def list_tasks(
    status: str | None = None,
    assignee_id: int | None = None,
    due_before: datetime | None = None,
    due_after: datetime | None = None,
    tag_ids: list[int] | None = Query(None),
    repo: TaskRepository = Depends(get_repository),
):
    criteria = TaskFilter(
        status=status,
        assignee_id=assignee_id,
        due_before=due_before,
        due_after=due_after,
        tag_ids=tag_ids or [],
    )
    now = utcnow()
    tasks = await task_service.list_tasks(repo, criteria)
    return [TaskSchema.from_task(t, now) for t in tasks]

@router.get("/overdue", response_model=list[TaskSchema])
async def list_overdue_tasks(repo: TaskRepository = Depends(get_repository)):
    now = utcnow()
    tasks = await task_service.list_overdue_tasks(repo, now)
    return [TaskSchema.from_task(t, now) for t in tasks]

@router.get("/count-by-status", response_model=StatusCount)
async def count_tasks_by_status(status: str, repo: TaskRepository = Depends(get_repository)):
    df = await report_service.get_task_dataframe(repo)
    return {"status": status, "count": report_service.count_by_status(df, status)}

@router.get("/{task_id}", response_model=TaskSchema)
async def get_task(task_id: int, repo: TaskRepository = Depends(get_repository)):
    return TaskSchema.from_task(await task_service.get_task(repo, task_id))

@router.patch("/{task_id}", response_model=TaskSchema)
async def update_task(task_id: int, update_data: TaskUpdate, repo: TaskRepository = Depends(get_repository)):
    task = await task_service.update_task(repo, task_id, update_data)
    return TaskSchema.from_task(task)

@router.patch("/{task_id}/status", response_model=StatusChangeResponse)
async def change_task_status(task_id: int, new_status: str, repo: TaskRepository = Depends(get_repository)):
    outcome = await task_service.change_status(repo, task_id, new_status)
    if not outcome.changed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{outcome.reason}: {new_status}",
        )
    return StatusChangeResponse(
        changed=True,
        message=f"Task {task_id} moved to {outcome.task.status.value}",
        task=TaskSchema.from_task(outcome.task),
    )

@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, repo: TaskRepository = Depends(get_repository)):
    if not await task_service.delete_task(repo, task_id):
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
