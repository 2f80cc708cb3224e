from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request

from taskmanager.api.http.schemas import TaskCreateBody, TaskUpdateBody, task_to_wire
from taskmanager.domain.enums import TaskPriority, TaskStatus
from taskmanager.domain.filters import TaskFilters
from taskmanager.services.task_service import MAX_PAGE_SIZE, TaskService

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def get_service(request: Request) -> TaskService:
    return request.app.state.service


@router.get("", response_model=Dict[str, Any])
async def list_tasks(
    user_id: int = Query(..., alias="userId"),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    overdue: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    service: TaskService = Depends(get_service),
):
    """Zadania użytkownika (najnowsze najpierw) z filtrami i paginacją."""
    filters = TaskFilters(
        status=TaskStatus.parse(status) if status else None,
        priority=TaskPriority.parse(priority) if priority else None,
        overdue=overdue,
    )
    items, total = await service.list_tasks_page(user_id, filters, page=page, page_size=limit)
    now = service.clock.now()
    return {
        "tasks": [task_to_wire(t, now) for t in items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


@router.post("", status_code=201, response_model=Dict[str, Any])
async def create_task(body: TaskCreateBody, service: TaskService = Depends(get_service)):
    task = await service.create_task(
        body.title,
        body.userId,
        description=body.description,
        priority=body.priority,
        due_date=body.dueDate,
    )
    return task_to_wire(task, service.clock.now())


@router.get("/stats", response_model=Dict[str, Any])
async def task_stats(
    user_id: int = Query(..., alias="userId"),
    service: TaskService = Depends(get_service),
):
    stats = await service.get_task_stats(user_id)
    return stats.to_dict()


@router.get("/{task_id}", response_model=Dict[str, Any])
async def get_task(
    task_id: int,
    user_id: int = Query(..., alias="userId"),
    service: TaskService = Depends(get_service),
):
    task = await service.get_task(task_id, user_id)
    return task_to_wire(task, service.clock.now())


@router.api_route("/{task_id}", methods=["PATCH", "PUT"], response_model=Dict[str, Any])
async def update_task(
    task_id: int,
    body: TaskUpdateBody,
    user_id: int = Query(..., alias="userId"),
    service: TaskService = Depends(get_service),
):
    task = await service.update_task(task_id, user_id, body.to_patch())
    return task_to_wire(task, service.clock.now())


@router.patch("/{task_id}/complete", response_model=Dict[str, Any])
async def toggle_complete(
    task_id: int,
    user_id: int = Query(..., alias="userId"),
    service: TaskService = Depends(get_service),
):
    task = await service.toggle_complete(task_id, user_id)
    return task_to_wire(task, service.clock.now())


@router.patch("/{task_id}/pending", response_model=Dict[str, Any])
async def mark_pending(
    task_id: int,
    user_id: int = Query(..., alias="userId"),
    service: TaskService = Depends(get_service),
):
    task = await service.mark_pending(task_id, user_id)
    return task_to_wire(task, service.clock.now())


@router.delete("/{task_id}", response_model=Dict[str, Any])
async def delete_task(
    task_id: int,
    user_id: int = Query(..., alias="userId"),
    service: TaskService = Depends(get_service),
):
    await service.delete_task(task_id, user_id)
    return {"message": "Task deleted successfully"}
