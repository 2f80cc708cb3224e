from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from taskmanager.domain.task import Task
from taskmanager.services.task_service import TaskPatch


# Nazwy pól = kontrakt wire (camelCase), dlatego bez aliasów.

class TaskCreateBody(BaseModel):
    """Ciało POST /api/tasks. Wymagalność tytułu i userId sprawdza serwis."""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    dueDate: Optional[datetime] = None
    userId: Optional[int] = None


class TaskUpdateBody(BaseModel):
    """Ciało PATCH/PUT /api/tasks/{id}; pole nieobecne ≠ pole z `null`."""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    dueDate: Optional[datetime] = None

    def to_patch(self) -> TaskPatch:
        return TaskPatch.from_mapping(self.model_dump(exclude_unset=True))


def task_to_wire(task: Task, now: Optional[datetime] = None) -> dict:
    record = task.serialize(now)
    record["userId"] = task.user_id
    return record
