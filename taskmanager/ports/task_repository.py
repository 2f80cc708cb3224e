from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from taskmanager.domain.filters import TaskFilters
from taskmanager.domain.task import Task, TaskId, UserId


### COMMENTS
# ==========================================================
# Kontrakt repozytorium zadań (ports/task_repository.py).
# ==========================================================
# Ten moduł definiuje interfejs (Protocol) dla warstwy trwałości Tasków.
# - Jest niezależny od technologii (pamięć, baza SQL przez SQLAlchemy).
# - Operacje I/O są asynchroniczne (`async def`); `create` jest czysto pamięciowe.
# - Adaptery mapują błędy technologiczne na błędy domenowe
#   (brak rekordu → TaskNotFoundError, SQLAlchemyError → TaskStorageError).
# - Repozytorium nie zawiera logiki biznesowej (walidacje i własność są w serwisie).
# - Listowanie: created_at DESC, tiebreaker po id DESC.
# - Adaptery zwracają kopie encji — zmiany są widoczne dopiero po `save`.


class TaskRepository(Protocol):
    """Interfejs repozytorium do zapisu i odczytu obiektów `Task`."""

    def create(self, **fields) -> Task:
        """Buduje nowy, jeszcze niezapisany obiekt `Task` (bez `id`).

        Wyjątki domenowe:
            TaskValidationError: Gdy pola naruszają niezmienniki encji.
        """

    async def save(self, task: Task) -> Task:
        """Zapisuje zadanie i zwraca jego utrwaloną kopię.

        - `task.id is None` → INSERT, repozytorium nadaje `id`.
        - w przeciwnym razie pełna podmiana istniejącego rekordu.

        Wyjątki domenowe:
            TaskNotFoundError: Przy podmianie rekordu, który nie istnieje.
        """

    async def get(self, task_id: TaskId) -> Optional[Task]:
        """Zwraca zadanie o podanym `task_id` albo `None` (bez wyjątku)."""

    async def find_many_by_owner(
        self,
        user_id: UserId,
        *,
        filters: Optional[TaskFilters] = None,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Task]:
        """Zwraca zadania właściciela, najnowsze najpierw.

        Parametry:
            filters: Filtry status/priority/overdue (AND); `None` = bez filtrów.
            now: Punkt odniesienia dla filtra `overdue` (domyślnie bieżący czas UTC).
            limit, offset: Paginacja ZAWSZE po sortowaniu; `None` = bez ograniczeń.
        """

    async def count_by_owner(
        self,
        user_id: UserId,
        *,
        filters: Optional[TaskFilters] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Liczba zadań właściciela spełniających filtry."""

    async def remove(self, task: Task) -> None:
        """Usuwa (hard delete) rekord zadania.

        Wyjątki domenowe:
            TaskNotFoundError: Gdy rekord nie istnieje.
        """
