from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from taskmanager.domain.enums import TaskPriority, TaskStatus
from taskmanager.domain.task import Task


@dataclass(frozen=True)
class TaskFilters:
    """
    Filtry listowania zadań; łączone przez AND.

    `None` oznacza brak ograniczenia (a nie "dopasuj pustą wartość").
    `overdue=True` → termin minął i status != completed; `False` nie filtruje.
    """
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    overdue: bool | None = None

    def __post_init__(self) -> None:
        if self.status is not None:
            object.__setattr__(self, "status", TaskStatus.parse(self.status))
        if self.priority is not None:
            object.__setattr__(self, "priority", TaskPriority.parse(self.priority))

    def matches(self, task: Task, now: datetime) -> bool:
        if self.status is not None and task.status != self.status:
            return False
        if self.priority is not None and task.priority != self.priority:
            return False
        if self.overdue and not task.is_overdue(now):
            return False
        return True
