import enum

from sqlalchemy import Column, Integer, String, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from tasktracker.database import Base
from tasktracker.models.types import UTCDateTime
from tasktracker.models.user import User


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class TaskStatus(str, enum.Enum):
    NEW = "New"
    IN_PROGRESS = "InProgress"
    DONE = "Done"


class TaskPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return list(TaskPriority).index(self) + 1


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)

    def __repr__(self):
        return f"<Tag {self.id}: {self.name}>"


class TaskTag(Base):
    """Association row; the composite key keeps (task_id, tag_id) unique."""
    __tablename__ = "task_tags"

    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True)


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(UTCDateTime, nullable=False)
    due_date = Column(UTCDateTime, nullable=False, index=True)
    completed_at = Column(UTCDateTime, nullable=True)
    status = Column(
        SQLEnum(TaskStatus, native_enum=False, length=20, values_callable=_enum_values),
        default=TaskStatus.NEW, nullable=False, index=True,
    )
    priority = Column(
        SQLEnum(TaskPriority, native_enum=False, length=20, values_callable=_enum_values),
        default=TaskPriority.MEDIUM, nullable=False,
    )
    version = Column(Integer, nullable=False, default=1)

    assignee = relationship(User, foreign_keys=[assignee_id], lazy="joined")
    # association rows are written through TaskRepository, never through this collection
    tags = relationship("Tag", secondary="task_tags", viewonly=True, order_by="Tag.id")

    # version is bumped explicitly by the lifecycle engine; a stale version fails the UPDATE
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    @property
    def tag_ids(self) -> list[int]:
        return [t.id for t in self.tags]

    @property
    def tag_names(self) -> list[str]:
        return [t.name for t in self.tags]

    @property
    def assignee_name(self) -> str | None:
        return self.assignee.name if self.assignee else None

    def __repr__(self):
        return f"<Task {self.id}: {self.title} ({self.status})>"
