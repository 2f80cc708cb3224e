from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import sqlalchemy as db
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from taskmanager.domain.enums import TaskPriority, TaskStatus
from taskmanager.domain.errors import TaskNotFoundError, TaskStorageError
from taskmanager.domain.filters import TaskFilters
from taskmanager.domain.task import Task, TaskId, UserId, decode_dt, encode_dt, utc_now
from taskmanager.ports.task_repository import TaskRepository

logger = logging.getLogger(__name__)

metadata = db.MetaData()

# nazwy kolumn = kontrakt z frontendem i schematem bazy
tasks_table = db.Table(
    "tasks",
    metadata,
    db.Column("id", db.Integer, primary_key=True, autoincrement=True),
    db.Column("title", db.String, nullable=False),
    db.Column("description", db.Text, nullable=True),
    db.Column("status", db.String(16), nullable=False, default=TaskStatus.PENDING.value),
    db.Column("priority", db.String(16), nullable=False, default=TaskPriority.MEDIUM.value),
    db.Column("dueDate", db.String, nullable=True),     # ISO8601 '...Z'
    db.Column("userId", db.Integer, nullable=False, index=True),
    db.Column("createdAt", db.String, nullable=False),  # ISO8601 '...Z'
    db.Column("updatedAt", db.String, nullable=False),  # ISO8601 '...Z'
)


class SqlTaskRepository(TaskRepository):
    def __init__(self, url: str | Path, *, echo: bool = False) -> None:
        """
        url: np. 'sqlite+aiosqlite:///data/tasks.db' lub Path do pliku (zostanie zrobiony URL)
        """
        if isinstance(url, Path):
            # absolutna ścieżka -> sqlite+aiosqlite:////abs/path.db
            self.url = f"sqlite+aiosqlite:///{url}"
        else:
            self.url = url
        self.echo = echo
        self.tasks = tasks_table
        self._engine: AsyncEngine | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise TaskStorageError("Repository is not open")
        return self._engine

    async def open(self) -> None:
        """Tworzy silnik i tabelę (jeśli nie istnieje). Wywołać raz na starcie."""
        if self._engine is not None:
            return
        if self.url.startswith("sqlite"):
            _ensure_sqlite_dir(self.url)
        self._engine = create_async_engine(self.url, echo=self.echo)
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except SQLAlchemyError as e:
            raise TaskStorageError(str(e)) from e
        logger.info("Task store opened: %s", self.url)

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        logger.info("Task store closed")

    async def __aenter__(self) -> "SqlTaskRepository":
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def _to_row(self, task: Task) -> dict:
        return {
            "title": task.title,
            "description": task.description,
            "status": (task.status or TaskStatus.PENDING).value,
            "priority": (task.priority or TaskPriority.MEDIUM).value,
            "dueDate": encode_dt(task.due_date),
            "userId": int(task.user_id),
            "createdAt": encode_dt(task.created_at or utc_now()),
            "updatedAt": encode_dt(task.updated_at or task.created_at or utc_now()),
        }

    def _from_row(self, row) -> Task:
        return Task(
            id=TaskId(row["id"]),
            title=row["title"],
            description=row["description"],
            status=TaskStatus.parse(row["status"]),
            priority=TaskPriority.parse(row["priority"]),
            due_date=decode_dt(row["dueDate"]),
            user_id=UserId(row["userId"]),
            created_at=decode_dt(row["createdAt"]),
            updated_at=decode_dt(row["updatedAt"]),
        )

    def _where_owner(self, user_id, filters: Optional[TaskFilters], now: Optional[datetime]) -> list:
        c = self.tasks.c
        clauses = [c.userId == int(user_id)]
        if filters is None:
            return clauses
        if filters.status is not None:
            clauses.append(c.status == filters.status.value)
        if filters.priority is not None:
            clauses.append(c.priority == filters.priority.value)
        if filters.overdue:
            clauses.append(c.dueDate.is_not(None))
            clauses.append(c.dueDate < encode_dt(now or utc_now()))
            clauses.append(c.status != TaskStatus.COMPLETED.value)
        return clauses

    def create(self, **fields) -> Task:
        return Task(**fields)

    async def save(self, task: Task) -> Task:
        rec = self._to_row(task)
        try:
            async with self.engine.begin() as conn:
                if task.id is None:
                    result = await conn.execute(db.insert(self.tasks).values(**rec))
                    task_id = TaskId(result.inserted_primary_key[0])
                else:
                    stmt = (
                        db.update(self.tasks)
                        .where(self.tasks.c.id == int(task.id))
                        .values(**rec)
                    )
                    result = await conn.execute(stmt)
                    if result.rowcount == 0:
                        raise TaskNotFoundError(task.id)
                    task_id = task.id
                row = (
                    await conn.execute(db.select(self.tasks).where(self.tasks.c.id == int(task_id)))
                ).mappings().one()
        except SQLAlchemyError as e:
            raise TaskStorageError(str(e)) from e
        return self._from_row(row)

    async def get(self, task_id: TaskId) -> Optional[Task]:
        stmt = db.select(self.tasks).where(self.tasks.c.id == int(task_id))
        try:
            async with self.engine.connect() as conn:
                row = (await conn.execute(stmt)).mappings().first()
        except SQLAlchemyError as e:
            raise TaskStorageError(str(e)) from e
        if row is None:
            return None
        return self._from_row(row)

    async def find_many_by_owner(
        self,
        user_id: UserId,
        *,
        filters: Optional[TaskFilters] = None,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Task]:
        # sortowanie stabilne: DESC + tie-breaker po id
        stmt = (
            db.select(self.tasks)
            .where(*self._where_owner(user_id, filters, now))
            .order_by(self.tasks.c.createdAt.desc(), self.tasks.c.id.desc())
        )
        if offset and offset > 0:
            stmt = stmt.offset(int(offset))
        if limit is not None:
            if limit <= 0:
                return []
            stmt = stmt.limit(int(limit))
        try:
            async with self.engine.connect() as conn:
                rows = (await conn.execute(stmt)).mappings().all()
        except SQLAlchemyError as e:
            raise TaskStorageError(str(e)) from e
        return [self._from_row(r) for r in rows]

    async def count_by_owner(
        self,
        user_id: UserId,
        *,
        filters: Optional[TaskFilters] = None,
        now: Optional[datetime] = None,
    ) -> int:
        stmt = (
            db.select(db.func.count())
            .select_from(self.tasks)
            .where(*self._where_owner(user_id, filters, now))
        )
        try:
            async with self.engine.connect() as conn:
                return int((await conn.execute(stmt)).scalar_one())
        except SQLAlchemyError as e:
            raise TaskStorageError(str(e)) from e

    async def remove(self, task: Task) -> None:
        stmt = db.delete(self.tasks).where(self.tasks.c.id == int(task.id))
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(stmt)
        except SQLAlchemyError as e:
            raise TaskStorageError(str(e)) from e
        if result.rowcount == 0:
            raise TaskNotFoundError(task.id)


def _ensure_sqlite_dir(url: str) -> None:
    database = db.make_url(url).database
    if database and database != ":memory:":
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)
