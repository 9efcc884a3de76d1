from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import Mock

import pytest

from task_manager.app import codec
from task_manager.app.errors import TaskValidationError
from task_manager.app.models import TaskPriority, TaskStatus
from task_manager.app.persistence import SnapshotFile, TaskService
from task_manager.app.storage import TaskStore


@pytest.fixture()
def snapshot_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "tasks.csv"


@pytest.fixture()
def service(snapshot_path: Path) -> TaskService:
    return TaskService(TaskStore(), SnapshotFile(snapshot_path))


def _ids_on_disk(path: Path):
    return [t.id for t in codec.decode(path.read_text(encoding="utf-8")).tasks]


def test_add_writes_full_snapshot(service, snapshot_path):
    service.add_task("Buy milk", TaskPriority.HIGH)
    service.add_task("Write report", TaskPriority.MEDIUM)

    lines = snapshot_path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == codec.HEADER
    assert len(lines) == 3
    assert _ids_on_disk(snapshot_path) == [1, 2]


def test_every_effective_mutation_rewrites_snapshot(service, snapshot_path):
    task = service.add_task("Draft", TaskPriority.LOW)

    service.update_task(task.id, title="Final")
    assert codec.decode(snapshot_path.read_text(encoding="utf-8")).tasks[0].title == "Final"

    service.update_task_status(task.id, TaskStatus.DONE)
    assert codec.decode(snapshot_path.read_text(encoding="utf-8")).tasks[0].status is TaskStatus.DONE

    service.update_task_priority(task.id, TaskPriority.HIGH)
    assert codec.decode(snapshot_path.read_text(encoding="utf-8")).tasks[0].priority is TaskPriority.HIGH

    assert service.remove_task(task.id) is True
    assert _ids_on_disk(snapshot_path) == []


def test_remove_missing_does_not_touch_file(service, snapshot_path):
    service.add_task("Keep", TaskPriority.LOW)
    before = snapshot_path.stat().st_mtime_ns
    service.snapshot = Mock(wraps=service.snapshot)

    assert service.remove_task(42) is False

    service.snapshot.save_all.assert_not_called()
    assert snapshot_path.stat().st_mtime_ns == before


def test_noop_update_and_unknown_id_do_not_persist(service):
    task = service.add_task("Same", TaskPriority.MEDIUM)
    service.snapshot = Mock(wraps=service.snapshot)

    assert service.update_task(task.id).id == task.id
    assert service.update_task(task.id, status=TaskStatus.NEW) is not None
    assert service.update_task(99, title="x") is None
    assert service.update_task_status(99, TaskStatus.DONE) is False

    service.snapshot.save_all.assert_not_called()


def test_reads_never_write(service):
    service.add_task("Buy milk", TaskPriority.HIGH)
    service.snapshot = Mock(wraps=service.snapshot)

    service.get_all()
    service.get_by_id(1)
    service.find_by_title("milk")
    service.filter_by_status(TaskStatus.NEW)
    service.filter_by_priority(TaskPriority.HIGH)
    service.sort_by_created_at()
    service.sort_by_priority()
    service.sort_by_status()

    service.snapshot.save_all.assert_not_called()


def test_validation_error_propagates_without_write(service):
    service.snapshot = Mock(wraps=service.snapshot)

    with pytest.raises(TaskValidationError):
        service.add_task("  ", TaskPriority.LOW)

    service.snapshot.save_all.assert_not_called()


def test_write_failure_keeps_in_memory_state(tmp_path):
    # каталог вместо файла -> запись падает с OSError
    target = tmp_path / "tasks.csv"
    target.mkdir()
    service = TaskService(TaskStore(), SnapshotFile(target))

    task = service.add_task("Survives", TaskPriority.HIGH)

    assert service.get_by_id(task.id).title == "Survives"
    assert service.snapshot.save_all(service.get_all()) is False


def test_load_missing_file_is_empty(tmp_path):
    result = SnapshotFile(tmp_path / "nope.csv").load_all()

    assert result.tasks == []
    assert result.max_id == 0


def test_invalid_utf8_line_is_skipped_and_rest_loads(tmp_path):
    path = tmp_path / "tasks.csv"
    path.write_bytes(
        b"id,title,status,priority,createdAt,updatedAt\n"
        b"3,Call mom,DONE,LOW,01.02.2024 08:00:00,01.02.2024 09:30:00\n"
        b"9,bad \xff byte,NEW,HIGH,02.02.2024 10:00:00,02.02.2024 10:00:00\n"
        b"7,Pay rent,NEW,HIGH,02.02.2024 10:00:00,02.02.2024 10:00:00\n"
    )

    result = SnapshotFile(path).load_all()

    assert [t.id for t in result.tasks] == [3, 7]
    assert result.skipped == 1
    assert result.max_id == 7


def test_title_with_unicode_line_break_is_rejected_and_file_stays_loadable(service, snapshot_path):
    service.add_task("Keep me", TaskPriority.LOW)

    with pytest.raises(TaskValidationError):
        service.add_task("a\u2028b", TaskPriority.HIGH)
    with pytest.raises(TaskValidationError):
        service.update_task(1, title="x\x0cy")

    loaded = SnapshotFile(snapshot_path).load_all()
    assert [t.title for t in loaded.tasks] == ["Keep me"]
    assert loaded.skipped == 0


def test_concurrent_mutations_leave_file_matching_cache(service, snapshot_path):
    def work(i: int) -> None:
        task = service.add_task(f"task {i}", TaskPriority.MEDIUM)
        if i % 3 == 0:
            service.remove_task(task.id)
        elif i % 3 == 1:
            service.update_task_status(task.id, TaskStatus.DONE)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(work, range(100)))

    def fields(tasks):
        return [(t.id, t.title, t.status, t.priority, t.created_at, t.updated_at) for t in tasks]

    on_disk = codec.decode(snapshot_path.read_text(encoding="utf-8")).tasks
    in_memory = service.get_all()
    assert len(in_memory) == 66
    assert fields(on_disk) == fields(in_memory)


def test_saved_snapshot_loads_back(service, snapshot_path):
    service.add_task("Buy milk", TaskPriority.HIGH)
    service.add_task("Write report", TaskPriority.MEDIUM)
    service.update_task_status(2, TaskStatus.IN_PROGRESS)

    loaded = SnapshotFile(snapshot_path).load_all()
    original = service.get_all()

    assert [(t.id, t.title, t.status, t.priority, t.created_at, t.updated_at) for t in loaded.tasks] == [
        (t.id, t.title, t.status, t.priority, t.created_at, t.updated_at) for t in original
    ]
    assert loaded.max_id == 2
