"""
FastAPI application factory.

The task store is created (or injected) per application and opened/closed in
the lifespan handler; nothing is kept in module-level state.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskmanager.adapters.sql.task_repo import SqlTaskRepository
from taskmanager.api.http.errors import register_error_handlers
from taskmanager.api.http.routes import router as tasks_router
from taskmanager.core.config import Settings, load_settings
from taskmanager.ports.clock import Clock
from taskmanager.ports.task_repository import TaskRepository
from taskmanager.services.task_service import TaskService

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[TaskRepository] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    settings = settings or load_settings()
    repo = repository or SqlTaskRepository(settings.database_url, echo=settings.sql_echo)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if isinstance(repo, SqlTaskRepository):
            await repo.open()
        logger.info("Task API ready")
        try:
            yield
        finally:
            if isinstance(repo, SqlTaskRepository):
                await repo.close()
            logger.info("Task API stopped")

    app = FastAPI(title="Task Manager API", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = TaskService(repo, clock)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(tasks_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
