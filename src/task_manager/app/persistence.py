# task_manager/app/persistence.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from . import codec
from .models import Task, TaskPriority, TaskStatus
from .storage import TaskStore

logger = logging.getLogger(__name__)


class SnapshotFile:
    """
    Снапшот задач на диске. Каждое сохранение переписывает файл целиком.
    Ошибки I/O только логируются: наружу ничего не пробрасывается.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def save_all(self, tasks: Iterable[Task]) -> bool:
        tasks = list(tasks)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(codec.encode(tasks), encoding="utf-8")
        except OSError:
            logger.exception("Failed to write task snapshot %s", self.path)
            return False

        logger.info("Saved %d tasks to %s", len(tasks), self.path)
        return True

    def load_all(self) -> codec.DecodeResult:
        if not self.path.exists():
            logger.info("Snapshot %s not found, starting empty", self.path)
            return codec.DecodeResult()

        try:
            data = self.path.read_bytes()
        except OSError:
            logger.exception("Failed to read task snapshot %s", self.path)
            return codec.DecodeResult()

        # битый UTF-8 выбрасывает только свою строку, остальные грузятся
        result = codec.decode_bytes(data)
        logger.info(
            "Loaded %d tasks from %s (skipped=%d, max_id=%d)",
            len(result.tasks),
            self.path,
            result.skipped,
            result.max_id,
        )
        return result


class TaskService:
    """
    Write-through обёртка над TaskStore.

    Мутация и запись снапшота выполняются под одним локом стора, поэтому
    файл всегда отражает согласованное состояние и пишет его только один
    поток за раз. Если мутация ничего не изменила (revision тот же),
    файл не трогаем. Чтения файл не пишут никогда.
    """

    def __init__(self, store: TaskStore, snapshot: SnapshotFile) -> None:
        self.store = store
        self.snapshot = snapshot

    def _write_through(self, action):
        with self.store.lock:
            before = self.store.revision
            result = action()
            if self.store.revision != before:
                # неудачная запись не откатывает изменения в памяти
                self.snapshot.save_all(self.store.get_all())
            return result

    def load_initial(self, tasks: List[Task]) -> None:
        # файл уже содержит эти задачи, переписывать его не нужно
        self.store.seed(tasks)

    # ---- mutations ----

    def add_task(self, title: str, priority: TaskPriority) -> Task:
        return self._write_through(lambda: self.store.add(title, priority))

    def update_task(
        self,
        task_id: int,
        title: Optional[str] = None,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
    ) -> Optional[Task]:
        return self._write_through(
            lambda: self.store.update(task_id, title=title, status=status, priority=priority)
        )

    def update_task_status(self, task_id: int, status: TaskStatus) -> bool:
        return self._write_through(lambda: self.store.update_status(task_id, status))

    def update_task_priority(self, task_id: int, priority: TaskPriority) -> bool:
        return self._write_through(lambda: self.store.update_priority(task_id, priority))

    def remove_task(self, task_id: int) -> bool:
        return self._write_through(lambda: self.store.remove(task_id))

    # ---- reads (без записи на диск) ----

    def get_all(self) -> List[Task]:
        return self.store.get_all()

    def get_by_id(self, task_id: int) -> Optional[Task]:
        return self.store.get_by_id(task_id)

    def find_by_title(self, text: Optional[str]) -> List[Task]:
        return self.store.find_by_title(text)

    def filter_by_status(self, status: TaskStatus) -> List[Task]:
        return self.store.filter_by_status(status)

    def filter_by_priority(self, priority: TaskPriority) -> List[Task]:
        return self.store.filter_by_priority(priority)

    def sort_by_created_at(self) -> List[Task]:
        return self.store.sort_by_created_at()

    def sort_by_priority(self) -> List[Task]:
        return self.store.sort_by_priority()

    def sort_by_status(self) -> List[Task]:
        return self.store.sort_by_status()
