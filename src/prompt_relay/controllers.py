"""Controllers for relay CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path

import uvicorn

from prompt_relay.config import Settings
from prompt_relay.engine.models import TaskView
from prompt_relay.engine.repository import TaskRepository
from prompt_relay.engine.runtime import RelayRuntime
from prompt_relay.logs import configure_logging
from prompt_relay.server.app import create_app

PREVIEW_CHARS = 80


@dataclass(slots=True)
class ServeCommand:
    """CLI input for running the HTTP server with its worker pool."""

    config_path: Path | None
    db_path: Path | None
    host: str | None = None
    port: int | None = None
    workers: int | None = None
    queue_capacity: int | None = None


@dataclass(slots=True)
class InitDbCommand:
    """CLI input for schema migration."""

    config_path: Path | None
    db_path: Path | None


@dataclass(slots=True)
class ListTasksCommand:
    """CLI input for task listing."""

    config_path: Path | None
    db_path: Path | None
    processed: bool | None
    limit: int


@dataclass(slots=True)
class ShowTaskCommand:
    """CLI input for single task lookup."""

    config_path: Path | None
    db_path: Path | None
    item_id: int


@dataclass(slots=True)
class StatsCommand:
    """CLI input for task counts."""

    config_path: Path | None
    db_path: Path | None


class RelayCliController:
    """Translate CLI commands into runtime, repository and server calls."""

    def serve(self, command: ServeCommand) -> None:
        """Run the server in the foreground until interrupted."""

        settings = Settings.from_env(db_path=command.db_path, config_path=command.config_path)
        settings = _apply_serve_overrides(settings, command)
        settings.validate()
        configure_logging(settings.logging)

        runtime = RelayRuntime.from_settings(settings)
        uvicorn.run(
            create_app(runtime),
            host=settings.server.host,
            port=settings.server.port,
            log_config=None,
            log_level=settings.logging.level.lower(),
        )

    def init_db(self, command: InitDbCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path, config_path=command.config_path)
        with _repository(settings):
            pass
        return [f"Schema is up to date: {settings.db_path}"]

    def list_tasks(self, command: ListTasksCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path, config_path=command.config_path)
        with _repository(settings) as repository:
            tasks = repository.list_tasks(processed=command.processed, limit=command.limit)
        if not tasks:
            return ["No tasks found."]
        return [_task_line(task) for task in tasks]

    def show_task(self, command: ShowTaskCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path, config_path=command.config_path)
        with _repository(settings) as repository:
            task = repository.find_by_item_id(command.item_id)
        if task is None:
            raise ValueError(f"No task found for item_id={command.item_id}")
        return [
            f"Task: {task.id}",
            f"Item: {task.item_id}",
            f"Processed: {'yes' if task.processed else 'no'}",
            f"Created: {task.created_at.isoformat()}",
            f"Completed: {task.completed_at.isoformat() if task.completed_at else '-'}",
            f"Prompt: {task.prompt}",
            f"Response: {task.response or '-'}",
        ]

    def stats(self, command: StatsCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path, config_path=command.config_path)
        with _repository(settings) as repository:
            counts = repository.count_tasks()
        return [
            f"Tasks: total={counts.total} processed={counts.processed} "
            f"unprocessed={counts.unprocessed}",
        ]


def _apply_serve_overrides(settings: Settings, command: ServeCommand) -> Settings:
    server = replace(
        settings.server,
        host=command.host if command.host is not None else settings.server.host,
        port=command.port if command.port is not None else settings.server.port,
    )
    workers = replace(
        settings.workers,
        pool_size=command.workers if command.workers is not None else settings.workers.pool_size,
        queue_capacity=(
            command.queue_capacity
            if command.queue_capacity is not None
            else settings.workers.queue_capacity
        ),
    )
    return replace(settings, server=server, workers=workers)


def _task_line(task: TaskView) -> str:
    state = "done" if task.processed else "pending"
    prompt = task.prompt.replace("\n", " ")
    if len(prompt) > PREVIEW_CHARS:
        prompt = prompt[: PREVIEW_CHARS - 3] + "..."
    return f"{task.id:>6}  item={task.item_id:<8} {state:<7} {prompt}"


@contextmanager
def _repository(settings: Settings) -> Iterator[TaskRepository]:
    repository = TaskRepository(
        settings.db_path,
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()
