from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from taskmanager.domain.errors import TaskNotFoundError
from taskmanager.domain.filters import TaskFilters
from taskmanager.domain.task import Task, TaskId, UserId, utc_now

### COMMENTS
# ==========================================================
# Adapter pamięciowy dla repozytorium zadań (adapters/memory/task_repo.py).
# ==========================================================
# Implementacja portu `TaskRepository` w pamięci.
#
# - Służy do testów serwisu i prototypowania (bez trwałego zapisu).
# - Dane w słowniku `_data: dict[TaskId, Task]`, id nadawane z licznika (jak autoincrement).
# - Na zewnątrz wychodzą wyłącznie kopie (`dataclasses.replace`), tak jak z bazy.
# - Zasady zgodne z kontraktem portu:
#     * `save` → INSERT gdy `id is None`, inaczej podmiana lub `TaskNotFoundError`,
#     * `remove` → usuwa lub zgłasza `TaskNotFoundError`,
#     * `find_many_by_owner` → created_at DESC + tiebreaker po id DESC.


class InMemoryTaskRepository:
    """
        Repozytorium z opcjonalną kolekcją startowych zadań.
        :param initial: Iterable z obiektami Task do wstępnego załadowania.
        Zadania bez `id` dostają kolejne numery; ostatni wygrywa przy duplikatach.
    """
    def __init__(self, initial: Iterable[Task] | None = None) -> None:
        self._data: dict[TaskId, Task] = {}
        self._next_id = 1
        for t in (initial or []):
            if t.id is None:
                t = replace(t, id=self._allocate_id())
            else:
                self._next_id = max(self._next_id, t.id + 1)
            self._data[t.id] = replace(t)

    def _allocate_id(self) -> TaskId:
        task_id = TaskId(self._next_id)
        self._next_id += 1
        return task_id

    def create(self, **fields) -> Task:
        return Task(**fields)

    async def save(self, task: Task) -> Task:
        """
            Zapisuje zadanie.

            - Nowe zadanie (`id is None`) dostaje kolejny identyfikator.
            - Istniejące jest podmieniane w całości; brak wpisu → `TaskNotFoundError`.

            :return: Kopia zapisanego obiektu.
        """
        if task.id is None:
            stored = replace(task, id=self._allocate_id())
        elif task.id in self._data:
            stored = replace(task)
        else:
            raise TaskNotFoundError(task.id)
        self._data[stored.id] = stored
        return replace(stored)

    async def get(self, task_id: TaskId) -> Optional[Task]:
        task = self._data.get(task_id)
        return replace(task) if task is not None else None

    def _select(self, user_id, filters, now) -> list[Task]:
        now = now or utc_now()
        filters = filters or TaskFilters()
        return [
            t for t in self._data.values()
            if t.user_id == user_id and filters.matches(t, now)
        ]

    async def find_many_by_owner(
        self,
        user_id: UserId,
        *,
        filters: Optional[TaskFilters] = None,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Task]:
        tasks = self._select(user_id, filters, now)
        # najnowsze najpierw, tiebreaker po id
        tasks.sort(key=lambda t: (t.created_at is not None, t.created_at, t.id), reverse=True)
        offset = offset or 0
        if limit is not None:
            tasks = tasks[offset : offset + limit]
        else:
            tasks = tasks[offset:]
        return [replace(t) for t in tasks]

    async def count_by_owner(
        self,
        user_id: UserId,
        *,
        filters: Optional[TaskFilters] = None,
        now: Optional[datetime] = None,
    ) -> int:
        return len(self._select(user_id, filters, now))

    async def remove(self, task: Task) -> None:
        if task.id in self._data:
            del self._data[task.id]
            return None
        raise TaskNotFoundError(task.id)
