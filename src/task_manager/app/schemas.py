# task_manager/app/schemas.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .models import Task, TaskPriority, TaskStatus


class TaskCreateRequest(BaseModel):
    title: Optional[str] = Field(None, description="Название задачи, без запятых")
    priority: Optional[TaskPriority] = Field(None, description="LOW / MEDIUM / HIGH")


class TaskUpdateRequest(BaseModel):
    # всё опционально: None = поле не трогаем
    title: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskPriorityUpdate(BaseModel):
    priority: TaskPriority


class TaskResponse(BaseModel):
    id: int
    title: str
    status: TaskStatus
    priority: TaskPriority
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            status=task.status,
            priority=task.priority,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )
