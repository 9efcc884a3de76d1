from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TaskStatus(str, Enum):
    # порядок объявления = порядок сортировки по статусу
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"

    @property
    def order(self) -> int:
        return list(TaskStatus).index(self)


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        """Чем выше, тем важнее: HIGH > MEDIUM > LOW."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
}


@dataclass(eq=False)
class Task:
    """
    Запись задачи.

    Идентичность только по id: две задачи с одинаковым id равны,
    даже если остальные поля различаются.
    Поля меняет только TaskStore, он же проставляет updated_at.
    """

    id: int
    title: str
    status: TaskStatus
    priority: TaskPriority
    created_at: datetime
    updated_at: datetime

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
