from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from taskmanager.adapters.system.clock_system import SystemClock
from taskmanager.domain.enums import TaskPriority, TaskStatus
from taskmanager.domain.errors import (
    TaskAuthorizationError,
    TaskNotFoundError,
    TaskValidationError,
)
from taskmanager.domain.filters import TaskFilters
from taskmanager.domain.task import Task, TaskId, UserId, as_utc, decode_dt
from taskmanager.ports.clock import Clock
from taskmanager.ports.task_repository import TaskRepository

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
# SQLite przechowuje LIMIT/OFFSET jako 64-bitowy INTEGER
_MAX_OFFSET = 2**63 - 1


### COMMENTS
# ==========================================================
# Warstwa serwisowa (services/task_service.py) — przypadki użycia.
# ==========================================================
# Rola:
# - Orkiestracja logiki aplikacyjnej nad portem `TaskRepository` (async).
# - Walidacje danych wejściowych (tytuł, user_id, paginacja).
# - Kontrola własności: tylko właściciel czyta szczegóły, edytuje i usuwa zadanie.
#
# Zasady:
# - Serwis korzysta wyłącznie z portów (repozytorium, zegar); nie dotyka adapterów.
# - Błędy domenowe:
#     * Walidacje → `TaskValidationError`.
#     * Brak zadania przy update/delete/toggle → `TaskNotFoundError`.
#     * Cudze zadanie → `TaskAuthorizationError` (odrębny od "nie znaleziono").
# - Każda operacja to kilka sekwencyjnych wywołań repo; brak blokad (last write wins).


class _Unset:
    """Znacznik "pole nie podane" w łatach — odróżnia brak pola od `None`."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

_PATCH_KEYS = {
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "dueDate": "due_date",
    "due_date": "due_date",
}


@dataclass(frozen=True)
class TaskPatch:
    """
    Częściowa aktualizacja zadania.

    Pole z wartością `UNSET` nie jest ruszane; `None` czyści opis / termin.
    """
    title: Any = UNSET
    description: Any = UNSET
    status: Any = UNSET
    priority: Any = UNSET
    due_date: Any = UNSET

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TaskPatch":
        """Buduje łatę z rekordu w formacie wire (`dueDate`, ...); nieznane klucze są pomijane."""
        fields = {}
        for key, value in data.items():
            name = _PATCH_KEYS.get(key)
            if name is None:
                continue
            if name == "due_date" and isinstance(value, str):
                value = decode_dt(value)
            fields[name] = value
        return cls(**fields)


@dataclass(frozen=True)
class TaskStats:
    total: int
    completed: int
    pending: int
    in_progress: int
    overdue: int

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "completed": self.completed,
            "pending": self.pending,
            "inProgress": self.in_progress,
            "overdue": self.overdue,
        }


class TaskService:
    """
    Serwis przypadków użycia dla zadań.

    :param repo: Implementacja portu TaskRepository.
    :param clock: Źródło czasu (domyślnie SystemClock).
    """
    def __init__(self, repo: TaskRepository, clock: Clock | None = None) -> None:
        self.repo = repo
        self.clock = clock or SystemClock()

    async def create_task(
        self,
        title: str | None,
        user_id: UserId | None = None,
        *,
        description: str | None = None,
        priority: TaskPriority | str | None = None,
        due_date: datetime | None = None,
    ) -> Task:
        """
            Tworzy nowe zadanie i zapisuje je w repozytorium.

            - `title` nie może być pusty ani składać się wyłącznie z białych znaków.
            - `user_id` jest wymagany.
            - Priorytet domyślnie "medium"; status ZAWSZE "pending".
            - `created_at` = `updated_at` = `clock.now()`.

            :return: Zapisany obiekt `Task` (z nadanym `id`).
            :raises TaskValidationError: Gdy `title` lub `user_id` są niepoprawne.
        """
        if not title or not title.strip():
            raise TaskValidationError("title", "Title is required")
        if not user_id:
            raise TaskValidationError("user_id", "User ID is required")

        now = self.clock.now()
        task = self.repo.create(
            title=title.strip(),
            description=description,
            priority=TaskPriority.parse(priority) if priority else TaskPriority.MEDIUM,
            due_date=due_date,
            user_id=user_id,
            status=TaskStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        saved = await self.repo.save(task)
        logger.info("Task %s created for user %s", saved.id, user_id)
        return saved

    async def list_tasks_by_user(self, user_id: UserId, filters: TaskFilters | None = None) -> list[Task]:
        """Zwraca zadania użytkownika (najnowsze najpierw) z opcjonalnymi filtrami (AND)."""
        return await self.repo.find_many_by_owner(user_id, filters=filters, now=self.clock.now())

    async def list_tasks_page(
        self,
        user_id: UserId,
        filters: TaskFilters | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Task], int]:
        """
        Zwraca stronę zadań użytkownika oraz łączną liczbę pasujących rekordów.

        - offset = (page - 1) * page_size, limit = page_size.
        - Repozytorium odpowiada za sort + tiebreaker + cięcie.

        :raises TaskValidationError: Gdy paginacja jest niepoprawna.
        :return: (items, total)
        """
        if page < 1 or not 1 <= page_size <= MAX_PAGE_SIZE:
            raise TaskValidationError("pagination", f"page >= 1, 1 <= page_size <= {MAX_PAGE_SIZE}")

        offset = (page - 1) * page_size
        if offset > _MAX_OFFSET:
            raise TaskValidationError("pagination", "page is out of range")

        now = self.clock.now()
        total = await self.repo.count_by_owner(user_id, filters=filters, now=now)
        items = await self.repo.find_many_by_owner(
            user_id, filters=filters, now=now, limit=page_size, offset=offset
        )
        return items, total

    async def get_task_by_id(self, task_id: TaskId, user_id: UserId) -> Task | None:
        """
            Zwraca zadanie albo `None`, gdy nie istnieje.

            :raises TaskAuthorizationError: Gdy zadanie należy do innego użytkownika.
        """
        task = await self.repo.get(task_id)
        if task is None:
            return None
        self._check_owner(task, user_id)
        return task

    async def get_task(self, task_id: TaskId, user_id: UserId) -> Task:
        """Jak `get_task_by_id`, ale brak zadania to `TaskNotFoundError`."""
        task = await self.get_task_by_id(task_id, user_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def update_task(self, task_id: TaskId, user_id: UserId, patch: TaskPatch) -> Task:
        """
            Aktualizuje wskazane pola zadania.

            - Pola `UNSET` pozostają bez zmian; `None` czyści opis lub termin.
            - Pusty tytuł → `TaskValidationError("title", "Title cannot be empty")`.
            - `updated_at` odświeżany dokładnie raz, niezależnie od liczby zmian.

            :raises TaskNotFoundError: Gdy nie ma zadania o tym `task_id`.
            :raises TaskAuthorizationError: Gdy zadanie należy do innego użytkownika.
        """
        task = await self._load_owned(task_id, user_id)

        if patch.title is not UNSET:
            if not patch.title or not str(patch.title).strip():
                raise TaskValidationError("title", "Title cannot be empty")
            task.title = str(patch.title).strip()
        if patch.description is not UNSET:
            task.description = patch.description
        if patch.status is not UNSET:
            if patch.status is None:
                raise TaskValidationError("status", "Status cannot be empty")
            task.status = TaskStatus.parse(patch.status)
        if patch.priority is not UNSET:
            if patch.priority is None:
                raise TaskValidationError("priority", "Priority cannot be empty")
            task.priority = TaskPriority.parse(patch.priority)
        if patch.due_date is not UNSET:
            task.due_date = as_utc(patch.due_date)

        task.touch(self.clock.now())
        saved = await self.repo.save(task)
        logger.info("Task %s updated by user %s", task_id, user_id)
        return saved

    async def toggle_complete(self, task_id: TaskId, user_id: UserId) -> Task:
        """
            Przełącza ukończenie: "completed" → "pending", każdy inny status → "completed".

            :raises TaskNotFoundError: Gdy nie ma zadania o tym `task_id`.
            :raises TaskAuthorizationError: Gdy zadanie należy do innego użytkownika.
        """
        task = await self._load_owned(task_id, user_id)
        new_status = TaskStatus.PENDING if task.is_completed() else TaskStatus.COMPLETED
        return await self._set_status(task, new_status, user_id)

    async def mark_pending(self, task_id: TaskId, user_id: UserId) -> Task:
        """Przywraca zadanie do "pending" niezależnie od bieżącego statusu."""
        task = await self._load_owned(task_id, user_id)
        return await self._set_status(task, TaskStatus.PENDING, user_id)

    async def _set_status(self, task: Task, status: TaskStatus, user_id: UserId) -> Task:
        task.update_status(status, self.clock.now())
        saved = await self.repo.save(task)
        logger.info("Task %s marked %s by user %s", task.id, status, user_id)
        return saved

    async def delete_task(self, task_id: TaskId, user_id: UserId) -> None:
        """
            Usuwa zadanie na stałe (hard delete).

            :raises TaskNotFoundError: Gdy nie ma zadania o tym `task_id`.
            :raises TaskAuthorizationError: Gdy zadanie należy do innego użytkownika.
        """
        task = await self._load_owned(task_id, user_id)
        await self.repo.remove(task)
        logger.info("Task %s deleted by user %s", task_id, user_id)

    async def get_task_stats(self, user_id: UserId) -> TaskStats:
        """Statystyki liczone z jednego pobrania wszystkich zadań użytkownika."""
        now = self.clock.now()
        tasks = await self.repo.find_many_by_owner(user_id, now=now)
        return TaskStats(
            total=len(tasks),
            completed=sum(1 for t in tasks if t.status == TaskStatus.COMPLETED),
            pending=sum(1 for t in tasks if t.status == TaskStatus.PENDING),
            in_progress=sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
            overdue=sum(1 for t in tasks if t.is_overdue(now)),
        )

    async def _load_owned(self, task_id: TaskId, user_id: UserId) -> Task:
        task = await self.repo.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        self._check_owner(task, user_id)
        return task

    def _check_owner(self, task: Task, user_id: UserId) -> None:
        if task.user_id != user_id:
            logger.warning("User %s refused access to task %s", user_id, task.id)
            raise TaskAuthorizationError(task.id, user_id)
