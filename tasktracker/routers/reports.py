from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from tasktracker.dependencies import get_repository
from tasktracker.repository import TaskRepository
from tasktracker.services.reports import (
    average_completion_days,
    csv_report,
    get_task_dataframe,
    overdue_by_assignee,
    status_summary,
)

router = APIRouter(prefix="/reports", tags=["reports"])

@router.get("/status-summary")
async def get_status_summary(repo: TaskRepository = Depends(get_repository)):
    df = await get_task_dataframe(repo)
    return status_summary(df)

@router.get("/overdue-by-assignee")
async def get_overdue_by_assignee(repo: TaskRepository = Depends(get_repository)):
    df = await get_task_dataframe(repo)
    return overdue_by_assignee(df)

@router.get("/average-completion")
async def get_average_completion(repo: TaskRepository = Depends(get_repository)):
    df = await get_task_dataframe(repo)
    return {"average_completion_days": average_completion_days(df)}

@router.get("/csv")
async def get_csv_report(repo: TaskRepository = Depends(get_repository)):
    df = await get_task_dataframe(repo)
    return PlainTextResponse(
        content=csv_report(df),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=tasks_report.csv"}
    )
