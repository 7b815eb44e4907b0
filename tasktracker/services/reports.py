from datetime import datetime

import pandas as pd

from tasktracker.exceptions import ValidationError
from tasktracker.models.tasks import Task as TaskModel, TaskStatus
from tasktracker.repository import TaskRepository
from tasktracker.services.filters import TaskFilter
from tasktracker.services.overdue import OVERDUE, effective_status, is_overdue
from tasktracker.services.validation import INVALID_STATUS, parse_status
from tasktracker.utils.clock import as_utc, utcnow

TASK_COLUMNS = [
    "task_id", "title", "status", "priority", "assignee_id", "assignee_name",
    "created_at", "due_date", "completed_at", "effective_status", "is_overdue", "tags",
]


def build_task_dataframe(tasks: list[TaskModel], now: datetime) -> pd.DataFrame:
    if not tasks:
        return pd.DataFrame(columns=TASK_COLUMNS)

    data = []
    for t in tasks:
        data.append({
            "task_id": t.id,
            "title": t.title,
            "status": t.status.value,
            "priority": t.priority.value,
            "assignee_id": t.assignee_id,
            "assignee_name": t.assignee_name,
            "created_at": t.created_at,
            "due_date": t.due_date,
            "completed_at": t.completed_at,
            "effective_status": effective_status(t, now),
            "is_overdue": is_overdue(t, now),
            "tags": ", ".join(t.tag_names),
        })

    df = pd.DataFrame(data, columns=TASK_COLUMNS)
    for col in ("created_at", "due_date", "completed_at"):
        df[col] = pd.to_datetime(df[col], utc=True)
    return df


async def get_task_dataframe(repo: TaskRepository, now: datetime | None = None) -> pd.DataFrame:
    now = as_utc(now) if now else utcnow()
    tasks = await repo.get_all_filtered(TaskFilter())
    return build_task_dataframe(tasks, now)


def status_summary(df: pd.DataFrame) -> dict[str, int]:
    """Stored status counts plus how many tasks are overdue right now."""
    counts = df["status"].value_counts()
    summary = {status.value: int(counts.get(status.value, 0)) for status in TaskStatus}
    summary[OVERDUE] = int(df["is_overdue"].astype(bool).sum())
    return summary


def overdue_by_assignee(df: pd.DataFrame) -> dict[str, list[str]]:
    overdue = df[df["is_overdue"].astype(bool)]
    if overdue.empty:
        return {}
    names = overdue["assignee_name"].fillna(overdue["assignee_id"].map(lambda i: f"user {i}"))
    grouped = overdue.assign(assignee=names).groupby("assignee", sort=True)["title"]
    return {assignee: list(titles) for assignee, titles in grouped}


def average_completion_days(df: pd.DataFrame) -> float | None:
    done = df[(df["status"] == TaskStatus.DONE.value) & df["completed_at"].notna()]
    if done.empty:
        return None
    durations = (done["completed_at"] - done["created_at"]).dt.total_seconds() / 86400.0
    return float(durations.mean())


def count_by_status(df: pd.DataFrame, status: str) -> int:
    parsed = parse_status(status)
    if parsed is None:
        raise ValidationError(f"{INVALID_STATUS}: {status}")
    return int((df["status"] == parsed.value).sum())


def csv_report(df: pd.DataFrame) -> str:
    return df.to_csv(index=False)
