from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from tasktracker.models.tasks import Task as TaskModel, TaskPriority, TaskStatus
from tasktracker.services.overdue import effective_status
from tasktracker.utils.sanitization import sanitize_string


# ── Tag schemas ─────────────────────────────────────────

class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)

    @field_validator("name", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class TagResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


# ── Task schemas ────────────────────────────────────────
# Length, priority and status rules live in services.validation so that every
# caller gets the same rejection reasons; these schemas only shape the input.

class TaskCreate(BaseModel):
    title: str
    description: str = ""
    assignee_id: int
    due_date: datetime
    priority: str | int = TaskPriority.MEDIUM.value
    tag_ids: list[int] = Field(default_factory=list)

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class TaskUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    assignee_id: int | None = None
    due_date: datetime | None = None
    status: str | None = None
    priority: str | int | None = None
    tag_ids: list[int] | None = None
    version: int | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)

    def changes(self) -> dict:
        """Fields the caller actually sent; an explicit null counts as absent."""
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None}


class Task(BaseModel):
    id: int
    title: str
    description: str
    assignee_id: int
    assignee_name: str | None = None
    created_at: datetime
    due_date: datetime
    completed_at: datetime | None = None
    status: TaskStatus
    priority: TaskPriority
    effective_status: str
    tags: list[str] = []
    tag_ids: list[int] = []
    version: int

    @classmethod
    def from_task(cls, task: TaskModel, now: datetime | None = None) -> "Task":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description or "",
            assignee_id=task.assignee_id,
            assignee_name=task.assignee_name,
            created_at=task.created_at,
            due_date=task.due_date,
            completed_at=task.completed_at,
            status=task.status,
            priority=task.priority,
            effective_status=effective_status(task, now),
            tags=task.tag_names,
            tag_ids=task.tag_ids,
            version=task.version,
        )


class StatusChangeResponse(BaseModel):
    changed: bool
    message: str
    task: Task | None = None


class StatusCount(BaseModel):
    status: str
    count: int
