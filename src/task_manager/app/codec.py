# task_manager/app/codec.py

"""
Текстовый формат снапшота задач.

    id,title,status,priority,createdAt,updatedAt
    1,Buy milk,NEW,HIGH,05.03.2024 10:15:00,05.03.2024 10:15:00

Запятые внутри значений не экранируются: такие title отсекает TaskStore.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Set

from .errors import MalformedRecordError
from .models import Task, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)

HEADER = "id,title,status,priority,createdAt,updatedAt"
TIMESTAMP_FORMAT = "%d.%m.%Y %H:%M:%S"
FIELD_COUNT = 6

_FIELD_SEPARATOR = re.compile(r"\s*,\s*")


@dataclass
class DecodeResult:
    tasks: List[Task] = field(default_factory=list)
    max_id: int = 0
    skipped: int = 0


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(raw: str) -> datetime:
    return datetime.strptime(raw, TIMESTAMP_FORMAT)


def encode_task(task: Task) -> str:
    return ",".join(
        [
            str(task.id),
            task.title,
            task.status.value,
            task.priority.value,
            format_timestamp(task.created_at),
            format_timestamp(task.updated_at),
        ]
    )


def encode(tasks: Iterable[Task]) -> str:
    lines = [HEADER]
    lines.extend(encode_task(t) for t in tasks)
    return "\n".join(lines) + "\n"


def decode_line(line: str) -> Task:
    values = _FIELD_SEPARATOR.split(line.strip())
    if len(values) != FIELD_COUNT:
        raise MalformedRecordError(f"expected {FIELD_COUNT} fields, got {len(values)}")

    raw_id, title, raw_status, raw_priority, raw_created, raw_updated = values

    try:
        task_id = int(raw_id)
        status = TaskStatus(raw_status)
        priority = TaskPriority(raw_priority)
        created_at = parse_timestamp(raw_created)
        updated_at = parse_timestamp(raw_updated)
    except ValueError as exc:
        raise MalformedRecordError(str(exc)) from exc

    if task_id <= 0:
        raise MalformedRecordError(f"id must be positive: {task_id}")
    if not title:
        raise MalformedRecordError("title is empty")
    if updated_at < created_at:
        raise MalformedRecordError("updatedAt is earlier than createdAt")

    return Task(
        id=task_id,
        title=title,
        status=status,
        priority=priority,
        created_at=created_at,
        updated_at=updated_at,
    )


def _decode_lines(lines: List[Optional[str]]) -> DecodeResult:
    result = DecodeResult()
    seen: Set[int] = set()

    for lineno, line in enumerate(lines[1:], start=2):
        if line is None:
            logger.warning("Skipping snapshot line %d: not valid UTF-8", lineno)
            result.skipped += 1
            continue
        if not line.strip():
            continue

        try:
            task = decode_line(line)
        except MalformedRecordError as exc:
            logger.warning("Skipping malformed snapshot line %d (%s): %r", lineno, exc, line)
            result.skipped += 1
            continue

        if task.id in seen:
            logger.warning("Skipping duplicate task id=%s on snapshot line %d", task.id, lineno)
            result.skipped += 1
            continue

        seen.add(task.id)
        result.tasks.append(task)
        result.max_id = max(result.max_id, task.id)

    return result


def decode(text: str) -> DecodeResult:
    """
    Разбирает снапшот целиком.

    Первая строка всегда считается заголовком. Битые строки и повторы id
    пропускаются с предупреждением в лог, остальные загружаются.
    Строки режутся только по "\\n" (encode пишет именно его).
    """
    return _decode_lines(text.split("\n"))


def decode_bytes(data: bytes) -> DecodeResult:
    """Как decode, но UTF-8 проверяется построчно: битая строка пропускается, а не весь файл."""
    lines: List[Optional[str]] = []
    for raw in data.split(b"\n"):
        try:
            lines.append(raw.decode("utf-8"))
        except UnicodeDecodeError:
            lines.append(None)
    return _decode_lines(lines)
