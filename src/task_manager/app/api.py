# task_manager/app/api.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from .errors import TaskValidationError
from .models import TaskPriority, TaskStatus
from .persistence import TaskService
from .schemas import (
    TaskCreateRequest,
    TaskPriorityUpdate,
    TaskResponse,
    TaskStatusUpdate,
    TaskUpdateRequest,
)

logger = logging.getLogger("task_manager.api")

router = APIRouter(prefix="/tasks", tags=["tasks"])

SORT_KEYS = ("createdat", "priority", "status")


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


def _to_response(tasks) -> List[TaskResponse]:
    return [TaskResponse.from_task(t) for t in tasks]


# Эндпоинты синхронные: FastAPI гоняет их в threadpool,
# стор сам сериализует доступ своим локом.


@router.get("", response_model=List[TaskResponse])
def list_tasks(
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    service: TaskService = Depends(get_task_service),
):
    """GET /tasks?status=NEW или ?priority=HIGH. Если заданы оба, фильтруем по status."""
    if status is not None:
        return _to_response(service.filter_by_status(status))
    if priority is not None:
        return _to_response(service.filter_by_priority(priority))
    return _to_response(service.get_all())


@router.get("/search", response_model=List[TaskResponse])
def search_tasks(title: Optional[str] = None, service: TaskService = Depends(get_task_service)):
    return _to_response(service.find_by_title(title))


@router.get("/sort", response_model=List[TaskResponse])
def sort_tasks(by: Optional[str] = None, service: TaskService = Depends(get_task_service)):
    if by is None:
        return _to_response(service.get_all())

    key = by.lower()
    if key == "createdat":
        return _to_response(service.sort_by_created_at())
    if key == "priority":
        return _to_response(service.sort_by_priority())
    if key == "status":
        return _to_response(service.sort_by_status())

    logger.warning("Unknown sort key %r, expected one of %s", by, SORT_KEYS)
    return _to_response(service.get_all())


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(task_id: int, service: TaskService = Depends(get_task_service)):
    task = service.get_by_id(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return TaskResponse.from_task(task)


@router.post("", response_model=TaskResponse, status_code=201)
def create_task(body: TaskCreateRequest, service: TaskService = Depends(get_task_service)):
    if body.title is None or not body.title.strip() or body.priority is None:
        raise HTTPException(status_code=400, detail="Required fields: title, priority.")
    try:
        task = service.add_task(body.title, body.priority)
    except TaskValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    logger.info("Task created id=%s", task.id)
    return TaskResponse.from_task(task)


@router.put("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    body: TaskUpdateRequest,
    service: TaskService = Depends(get_task_service),
):
    try:
        task = service.update_task(
            task_id,
            title=body.title,
            status=body.status,
            priority=body.priority,
        )
    except TaskValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return TaskResponse.from_task(task)


@router.patch("/{task_id}/status", response_model=TaskResponse)
def update_task_status(
    task_id: int,
    body: TaskStatusUpdate,
    service: TaskService = Depends(get_task_service),
):
    # копия из той же операции: параллельный DELETE не превратит успех в 404
    task = service.update_task(task_id, status=body.status)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return TaskResponse.from_task(task)


@router.patch("/{task_id}/priority", response_model=TaskResponse)
def update_task_priority(
    task_id: int,
    body: TaskPriorityUpdate,
    service: TaskService = Depends(get_task_service),
):
    task = service.update_task(task_id, priority=body.priority)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return TaskResponse.from_task(task)


@router.delete("/{task_id}", status_code=204)
def delete_task(task_id: int, service: TaskService = Depends(get_task_service)):
    if not service.remove_task(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return Response(status_code=204)
