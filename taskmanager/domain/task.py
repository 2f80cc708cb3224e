from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import NewType

from taskmanager.domain.enums import TaskPriority, TaskStatus
from taskmanager.domain.errors import TaskValidationError

TaskId = NewType("TaskId", int)
UserId = NewType("UserId", int)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime | None) -> datetime | None:
    """Naive datetime traktujemy jako UTC; aware konwertujemy do UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def encode_dt(dt: datetime | None) -> str | None:
    # ISO 8601 w UTC, stała szerokość (mikrosekundy) + sufiks 'Z'
    if dt is None:
        return None
    return as_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def decode_dt(s: str | None) -> datetime | None:
    if s is None:
        return None
    try:
        parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        raise TaskValidationError("due_date", f"Invalid date '{s}', expected ISO 8601")
    return as_utc(parsed)


def _check_title(title) -> str:
    if not title or not str(title).strip():
        raise TaskValidationError("title", "Title cannot be empty")
    return str(title).strip()


@dataclass
class Task:
    """
    Model domenowy pojedynczego zadania użytkownika.

    Walidacja w `__post_init__` (tytuł, `user_id`); status i priorytet NIE są tu
    ustawiane domyślnie — to odpowiedzialność serwisu. `id` nadaje repozytorium
    przy pierwszym zapisie.
    """
    title: str
    user_id: UserId
    id: TaskId | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.title = _check_title(self.title)
        if not self.user_id:
            raise TaskValidationError("user_id", "User ID is required")
        if self.status is not None:
            self.status = TaskStatus.parse(self.status)
        if self.priority is not None:
            self.priority = TaskPriority.parse(self.priority)
        self.due_date = as_utc(self.due_date)
        self.created_at = as_utc(self.created_at)
        self.updated_at = as_utc(self.updated_at)

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.due_date is None:
            return False
        now = as_utc(now) or utc_now()
        return self.due_date < now and self.status != TaskStatus.COMPLETED

    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def serialize(self, now: datetime | None = None) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value if self.status else None,
            "priority": self.priority.value if self.priority else None,
            "dueDate": encode_dt(self.due_date),
            "createdAt": encode_dt(self.created_at),
            "updatedAt": encode_dt(self.updated_at),
            "isOverdue": self.is_overdue(now),
            "isCompleted": self.is_completed(),
        }

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = as_utc(now) or utc_now()

    def update_title(self, title: str, now: datetime | None = None) -> None:
        self.title = _check_title(title)
        self.touch(now)

    def update_status(self, status: TaskStatus | str, now: datetime | None = None) -> None:
        self.status = TaskStatus.parse(status)
        self.touch(now)

    def update_priority(self, priority: TaskPriority | str, now: datetime | None = None) -> None:
        self.priority = TaskPriority.parse(priority)
        self.touch(now)

    def update_description(self, description: str | None, now: datetime | None = None) -> None:
        self.description = description
        self.touch(now)

    def update_due_date(self, due_date: datetime | None, now: datetime | None = None) -> None:
        self.due_date = as_utc(due_date)
        self.touch(now)



### COMMENTS
# ======================================
# Dlaczego Task NIE jest frozen
# ======================================
# Encja ma mutatory (update_title, update_status, ...), które muszą odświeżać
# `updated_at`. Repozytoria zwracają KOPIE encji — zmiana obiektu w pamięci nie
# wpływa na magazyn, dopóki serwis nie wywoła `repo.save(task)`.
#
# ======================================
# Czas
# ======================================
# Każda metoda zależna od czasu przyjmuje opcjonalne `now`. Serwis przekazuje
# `clock.now()` (port Clock), testy — stały czas. Bez `now` używany jest
# bieżący czas UTC.
