from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from threading import RLock
from typing import Callable, Dict, Iterable, List, Optional

from .errors import TaskValidationError
from .models import Task, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def local_now() -> datetime:
    # формат снапшота хранит секунды, микросекунды не нужны
    return datetime.now().replace(microsecond=0)


def normalize_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise TaskValidationError("Task title must not be empty.")
    title = title.strip()
    # splitlines ловит и \x0b, \x85, \u2028 и прочие разрывы строк
    if "," in title or len(title.splitlines()) > 1:
        raise TaskValidationError("Task title must not contain commas or line breaks.")
    return title


class IdAllocator:
    """Выдаёт строго возрастающие id. Сам не синхронизирован: вызывать под локом стора."""

    def __init__(self, start: int = 1) -> None:
        self._next = start

    @property
    def next_id(self) -> int:
        return self._next

    def allocate(self) -> int:
        task_id = self._next
        self._next += 1
        return task_id

    def advance_past(self, max_id: int) -> None:
        if max_id >= self._next:
            self._next = max_id + 1


class TaskStore:
    """
    In-memory кэш задач, единственный владелец объектов Task.

    Один RLock покрывает и коллекцию, и аллокатор id. Наружу отдаются
    только копии. revision растёт при каждом изменении, по нему
    TaskService понимает, нужно ли переписывать снапшот.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._tasks: Dict[int, Task] = {}
        self._allocator = IdAllocator()
        self._clock = clock or local_now
        self._lock = RLock()
        self._revision = 0

    @property
    def lock(self) -> RLock:
        return self._lock

    @property
    def revision(self) -> int:
        with self._lock:
            return self._revision

    @property
    def next_id(self) -> int:
        with self._lock:
            return self._allocator.next_id

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def _changed(self) -> None:
        self._revision += 1

    def _snapshot(self) -> List[Task]:
        return [replace(t) for t in self._tasks.values()]

    # ---- bootstrap ----

    def seed(self, tasks: Iterable[Task]) -> None:
        seeded: Dict[int, Task] = {}
        for task in tasks:
            if task.id in seeded:
                raise TaskValidationError(f"Duplicate task id in seed: {task.id}")
            seeded[task.id] = replace(task)

        with self._lock:
            self._tasks = seeded
            if seeded:
                self._allocator.advance_past(max(seeded))
            self._changed()
            logger.debug("Store seeded with %d tasks, next_id=%d", len(seeded), self._allocator.next_id)

    # ---- mutations ----

    def add(self, title: str, priority: TaskPriority) -> Task:
        title = normalize_title(title)
        with self._lock:
            now = self._clock()
            task = Task(
                id=self._allocator.allocate(),
                title=title,
                status=TaskStatus.NEW,
                priority=priority,
                created_at=now,
                updated_at=now,
            )
            self._tasks[task.id] = task
            self._changed()
            logger.debug("Task added id=%s priority=%s", task.id, priority.value)
            return replace(task)

    def update(
        self,
        task_id: int,
        title: Optional[str] = None,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
    ) -> Optional[Task]:
        if title is not None:
            title = normalize_title(title)

        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None

            changed = False
            if title is not None and title != task.title:
                task.title = title
                changed = True
            if status is not None and status != task.status:
                task.status = status
                changed = True
            if priority is not None and priority != task.priority:
                task.priority = priority
                changed = True

            if changed:
                self._touch(task)
            return replace(task)

    def update_status(self, task_id: int, status: TaskStatus) -> bool:
        return self.update(task_id, status=status) is not None

    def update_priority(self, task_id: int, priority: TaskPriority) -> bool:
        return self.update(task_id, priority=priority) is not None

    def remove(self, task_id: int) -> bool:
        with self._lock:
            if self._tasks.pop(task_id, None) is None:
                return False
            self._changed()
            logger.debug("Task removed id=%s", task_id)
            return True

    def _touch(self, task: Task) -> None:
        # updated_at никогда не раньше created_at, даже если часы ушли назад
        task.updated_at = max(self._clock(), task.created_at)
        self._changed()

    # ---- reads ----

    def get_all(self) -> List[Task]:
        with self._lock:
            return self._snapshot()

    def get_by_id(self, task_id: int) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            return replace(task) if task is not None else None

    def find_by_title(self, text: Optional[str]) -> List[Task]:
        if text is None or not text.strip():
            return []
        needle = text.lower()
        return [t for t in self.get_all() if needle in t.title.lower()]

    def filter_by_status(self, status: TaskStatus) -> List[Task]:
        return [t for t in self.get_all() if t.status == status]

    def filter_by_priority(self, priority: TaskPriority) -> List[Task]:
        return [t for t in self.get_all() if t.priority == priority]

    def sort_by_created_at(self) -> List[Task]:
        return sorted(self.get_all(), key=lambda t: (t.created_at, t.id))

    def sort_by_priority(self) -> List[Task]:
        return sorted(self.get_all(), key=lambda t: (-t.priority.rank, t.id))

    def sort_by_status(self) -> List[Task]:
        return sorted(self.get_all(), key=lambda t: (t.status.order, t.id))
