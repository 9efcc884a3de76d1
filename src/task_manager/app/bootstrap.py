import logging
from typing import List, Optional, Tuple

from .models import TaskPriority, TaskStatus
from .persistence import TaskService

logger = logging.getLogger("task_manager.bootstrap")

# (title, priority, статус после создания)
DEFAULT_TASKS: List[Tuple[str, TaskPriority, Optional[TaskStatus]]] = [
    ("Buy bread and milk", TaskPriority.HIGH, None),
    ("Finish the project report", TaskPriority.MEDIUM, TaskStatus.IN_PROGRESS),
    ("Review the service architecture", TaskPriority.LOW, None),
]


def initialize(service: TaskService, seed_defaults: bool = True) -> int:
    """
    Первичное наполнение стора, один раз до приёма запросов.

    Есть задачи в снапшоте -> кладём их в стор (аллокатор id сдвигается).
    Нет -> создаём примеры через обычные add/update_status,
    чтобы они попали в файл тем же путём, что и живой трафик.
    """
    loaded = service.snapshot.load_all()

    if loaded.tasks:
        service.load_initial(loaded.tasks)
        logger.info("Loaded %d tasks from snapshot", len(loaded.tasks))
    elif seed_defaults:
        logger.info("Snapshot is empty, generating example tasks")
        for title, priority, status in DEFAULT_TASKS:
            task = service.add_task(title, priority)
            if status is not None:
                service.update_task_status(task.id, status)
    else:
        logger.info("Snapshot is empty, default seeding disabled")

    return len(service.store)
