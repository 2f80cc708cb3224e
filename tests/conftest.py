from datetime import datetime, timedelta, timezone

import pytest

from taskmanager.adapters.memory.task_repo import InMemoryTaskRepository
from taskmanager.services.task_service import TaskService

FIXED_NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, fixed: datetime | None = None):
        # jeśli nie podamy fixed, zwróci zawsze ten sam „teraz”
        self.fixed = fixed or FIXED_NOW

    def now(self) -> datetime:
        return self.fixed

    def advance(self, **kwargs) -> None:
        self.fixed = self.fixed + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture
def service(repo, clock) -> TaskService:
    return TaskService(repo, clock)
