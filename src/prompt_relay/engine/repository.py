"""Durable task record store backed by SQLModel + SQLite."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import delete as sa_delete
from sqlalchemy import func
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from prompt_relay.engine.models import TaskCounts, TaskView
from prompt_relay.storage.alembic_runner import MigrationsNotFoundError, upgrade_head
from prompt_relay.storage.common import (
    build_sqlite_engine,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from prompt_relay.storage.sqlmodel_models import TaskRecord


class StoreError(Exception):
    """I/O failure against the durable task store."""


class TaskConflictError(Exception):
    """Another outstanding task already exists for the same item."""

    def __init__(self, item_id: int) -> None:
        super().__init__(f"An unprocessed task already exists for item_id={item_id}")
        self.item_id = item_id


class TaskRepository:
    """Task persistence facade.

    Each call runs in its own session, so one repository instance is shared by
    the admission path, the lookup path and every worker thread.
    """

    def __init__(self, db_path: Path, *, sqlite_busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(
            db_path=db_path,
            busy_timeout_ms=sqlite_busy_timeout_ms,
        )

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations up to head."""

        with _store_errors("init_schema"):
            try:
                upgrade_head(self.db_path)
            except MigrationsNotFoundError as error:
                raise StoreError(str(error)) from error

    def create(self, *, item_id: int, prompt: str) -> TaskView:
        """Insert a fresh unprocessed task with an empty response."""

        with _store_errors("create"), Session(self.engine) as session:
            row = TaskRecord(
                item_id=item_id,
                prompt=prompt,
                response="",
                processed=False,
                created_at=to_db_datetime(utc_now()),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as error:
                session.rollback()
                raise TaskConflictError(item_id) from error
            session.refresh(row)
            return _to_task_view(row)

    def get(self, task_id: int) -> TaskView | None:
        """Load one task by its store-assigned id."""

        with _store_errors("get"), Session(self.engine) as session:
            row = session.get(TaskRecord, task_id)
            return _to_task_view(row) if row is not None else None

    def find_by_item_id(self, item_id: int) -> TaskView | None:
        """Return the newest task for a caller item id, or None."""

        with _store_errors("find_by_item_id"), Session(self.engine) as session:
            row = session.exec(
                select(TaskRecord)
                .where(TaskRecord.item_id == item_id)
                .order_by(col(TaskRecord.id).desc())
                .limit(1),
            ).one_or_none()
            return _to_task_view(row) if row is not None else None

    def delete(self, task_id: int) -> bool:
        """Delete a task row. Deleting a missing row is a no-op."""

        with _store_errors("delete"), Session(self.engine) as session:
            result = session.exec(
                sa_delete(TaskRecord).where(col(TaskRecord.id) == task_id),
            )
            session.commit()
            return result.rowcount == 1

    def mark_completed(self, *, task_id: int, response: str) -> bool:
        """Store the response and flip ``processed`` in one update.

        Returns False when the row is gone or was already completed; an
        existing response is never overwritten.
        """

        with _store_errors("mark_completed"), Session(self.engine) as session:
            result = session.exec(
                sa_update(TaskRecord)
                .where(
                    col(TaskRecord.id) == task_id,
                    col(TaskRecord.processed).is_(False),
                )
                .values(
                    response=response,
                    processed=True,
                    completed_at=to_db_datetime(utc_now()),
                ),
            )
            if result.rowcount != 1:
                session.rollback()
                return False
            session.commit()
            return True

    def list_unprocessed(self) -> list[TaskView]:
        """Return every task not yet marked processed, oldest first."""

        with _store_errors("list_unprocessed"), Session(self.engine) as session:
            rows = session.exec(
                select(TaskRecord)
                .where(col(TaskRecord.processed).is_(False))
                .order_by(col(TaskRecord.id).asc()),
            ).all()
            return [_to_task_view(row) for row in rows]

    def list_tasks(self, *, processed: bool | None = None, limit: int = 50) -> list[TaskView]:
        """Return newest tasks first, optionally filtered by processed state."""

        with _store_errors("list_tasks"), Session(self.engine) as session:
            statement = select(TaskRecord)
            if processed is not None:
                statement = statement.where(col(TaskRecord.processed).is_(processed))
            rows = session.exec(
                statement.order_by(col(TaskRecord.id).desc()).limit(max(1, limit)),
            ).all()
            return [_to_task_view(row) for row in rows]

    def count_tasks(self) -> TaskCounts:
        """Count all, processed and unprocessed tasks."""

        with _store_errors("count_tasks"), Session(self.engine) as session:
            rows = session.exec(
                select(TaskRecord.processed, func.count()).group_by(TaskRecord.processed),
            ).all()
        by_state = {bool(processed): int(count) for processed, count in rows}
        processed_count = by_state.get(True, 0)
        unprocessed_count = by_state.get(False, 0)
        return TaskCounts(
            total=processed_count + unprocessed_count,
            processed=processed_count,
            unprocessed=unprocessed_count,
        )


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as error:
        raise StoreError(f"Task store {operation} failed: {error}") from error


def _to_task_view(row: TaskRecord) -> TaskView:
    if row.id is None:
        raise StoreError("Task row has no id assigned")
    return TaskView(
        id=row.id,
        item_id=row.item_id,
        prompt=row.prompt,
        response=row.response or "",
        processed=bool(row.processed),
        created_at=to_utc_aware_datetime(row.created_at),
        completed_at=(
            to_utc_aware_datetime(row.completed_at) if row.completed_at is not None else None
        ),
    )
