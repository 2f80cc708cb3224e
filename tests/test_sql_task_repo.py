from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from taskmanager.adapters.sql.task_repo import SqlTaskRepository, tasks_table
from taskmanager.domain.enums import TaskPriority, TaskStatus
from taskmanager.domain.errors import TaskNotFoundError, TaskStorageError
from taskmanager.domain.filters import TaskFilters
from taskmanager.domain.task import Task, TaskId, UserId
from taskmanager.services.task_service import TaskPatch, TaskService

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def tmp_repo(tmp_path):
    """Repozytorium na świeżej tymczasowej bazie."""
    repo = SqlTaskRepository(tmp_path / "tasks.db")
    await repo.open()
    yield repo
    await repo.close()


def make_task(title: str = "Test", user_id: int = 1, created_at: datetime = NOW, **extra) -> Task:
    return Task(
        title=title,
        user_id=UserId(user_id),
        description="desc",
        status=extra.pop("status", TaskStatus.PENDING),
        priority=extra.pop("priority", TaskPriority.MEDIUM),
        created_at=created_at,
        updated_at=created_at,
        **extra,
    )


def test_column_names_follow_wire_contract():
    assert tasks_table.name == "tasks"
    assert set(tasks_table.c.keys()) == {
        "id", "title", "description", "status", "priority",
        "dueDate", "userId", "createdAt", "updatedAt",
    }


@pytest.mark.asyncio
async def test_save_assigns_id_and_get_roundtrips(tmp_repo):
    due = NOW + timedelta(days=2)
    saved = await tmp_repo.save(make_task(due_date=due))

    assert saved.id is not None
    fetched = await tmp_repo.get(saved.id)
    assert fetched == saved
    assert fetched.due_date == due
    assert fetched.created_at == NOW
    assert fetched.status is TaskStatus.PENDING


@pytest.mark.asyncio
async def test_ids_are_sequential(tmp_repo):
    first = await tmp_repo.save(make_task("A"))
    second = await tmp_repo.save(make_task("B"))
    assert second.id > first.id


@pytest.mark.asyncio
async def test_get_missing_returns_none(tmp_repo):
    assert await tmp_repo.get(TaskId(404)) is None


@pytest.mark.asyncio
async def test_save_existing_replaces_row(tmp_repo):
    saved = await tmp_repo.save(make_task())
    saved.update_status(TaskStatus.COMPLETED, now=NOW + timedelta(hours=1))
    saved.update_description(None, now=NOW + timedelta(hours=1))

    await tmp_repo.save(saved)

    result = await tmp_repo.get(saved.id)
    assert result.status is TaskStatus.COMPLETED
    assert result.description is None
    assert result.updated_at == NOW + timedelta(hours=1)


@pytest.mark.asyncio
async def test_save_unknown_id_raises(tmp_repo):
    with pytest.raises(TaskNotFoundError):
        await tmp_repo.save(make_task(id=TaskId(77)))


@pytest.mark.asyncio
async def test_remove_deletes(tmp_repo):
    saved = await tmp_repo.save(make_task())
    await tmp_repo.remove(saved)

    assert await tmp_repo.get(saved.id) is None
    with pytest.raises(TaskNotFoundError):
        await tmp_repo.remove(saved)


@pytest.mark.asyncio
async def test_find_many_by_owner_orders_newest_first(tmp_repo):
    old = await tmp_repo.save(make_task("old", created_at=NOW - timedelta(days=1)))
    new = await tmp_repo.save(make_task("new", created_at=NOW))
    tie = await tmp_repo.save(make_task("tie", created_at=NOW))
    await tmp_repo.save(make_task("foreign", user_id=2))

    items = await tmp_repo.find_many_by_owner(UserId(1))

    assert [t.id for t in items] == [tie.id, new.id, old.id]


@pytest.mark.asyncio
async def test_find_many_by_owner_filters(tmp_repo):
    overdue = await tmp_repo.save(make_task("overdue", due_date=NOW - timedelta(minutes=1)))
    await tmp_repo.save(make_task("done", due_date=NOW - timedelta(days=1), status=TaskStatus.COMPLETED))
    future = await tmp_repo.save(make_task("future", due_date=NOW + timedelta(days=1), priority=TaskPriority.HIGH))
    await tmp_repo.save(make_task("no due"))

    only_overdue = await tmp_repo.find_many_by_owner(UserId(1), filters=TaskFilters(overdue=True), now=NOW)
    only_high = await tmp_repo.find_many_by_owner(UserId(1), filters=TaskFilters(priority="high"), now=NOW)
    completed = await tmp_repo.count_by_owner(UserId(1), filters=TaskFilters(status="completed"))

    assert [t.id for t in only_overdue] == [overdue.id]
    assert [t.id for t in only_high] == [future.id]
    assert completed == 1
    assert await tmp_repo.count_by_owner(UserId(1)) == 4


@pytest.mark.asyncio
async def test_find_many_by_owner_paginates_after_sorting(tmp_repo):
    for i in range(4):
        await tmp_repo.save(make_task(f"T{i}", created_at=NOW + timedelta(seconds=i)))

    page = await tmp_repo.find_many_by_owner(UserId(1), limit=2, offset=1)

    assert [t.title for t in page] == ["T2", "T1"]


@pytest.mark.asyncio
async def test_closed_repository_raises_storage_error(tmp_path):
    repo = SqlTaskRepository(tmp_path / "closed.db")
    with pytest.raises(TaskStorageError):
        await repo.get(TaskId(1))


@pytest.mark.asyncio
async def test_data_survives_reopen(tmp_path):
    async with SqlTaskRepository(tmp_path / "persist.db") as repo:
        saved = await repo.save(make_task("kept"))

    async with SqlTaskRepository(tmp_path / "persist.db") as repo:
        assert (await repo.get(saved.id)).title == "kept"


@pytest.mark.asyncio
async def test_service_over_sql_store(tmp_repo):
    service = TaskService(tmp_repo)
    task = await service.create_task("From service", 1)
    await service.update_task(task.id, 1, TaskPatch(status="in_progress"))

    stats = await service.get_task_stats(1)

    assert stats.total == 1
    assert stats.in_progress == 1
